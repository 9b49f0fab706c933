"""
QA Memoization Cache Service

Provides a thin cache wrapper with:
  - Owner namespace: content-addressed keys (item identity + attribute hash),
    reusable across refresh passes and processes
  - Execution namespace: owner key + per-refresh random token, valid for a
    single refresh pass only
  - Flush and health helpers

Uses Redis when REDIS_URL points at a Redis server, falls back to
a simple in-memory dict for development/testing.
"""

import hashlib
import json
import logging
import os
import time
import uuid

from qa_state.core.exceptions import ExecutionKeyNotInitializedError

logger = logging.getLogger(__name__)

# ── In-memory fallback ───────────────────────────────────────────────────

_memory_store: dict = {}  # key → (value_json, expire_ts)


class _MemoryBackend:
    """Simple dict cache for dev/testing."""

    def get(self, key):
        entry = _memory_store.get(key)
        if entry is None:
            return None
        val, expires = entry
        if expires and time.time() > expires:
            _memory_store.pop(key, None)
            return None
        return val

    def setex(self, key, ttl_seconds, value):
        _memory_store[key] = (value, time.time() + ttl_seconds)

    def flushdb(self):
        _memory_store.clear()

    def ping(self):
        return True


# ── Singleton cache backend ──────────────────────────────────────────────

_backend = None
_redis_url = None


def init_cache(app):
    """Take the backend URL from the app config instead of the environment."""
    global _redis_url
    _redis_url = app.config.get("REDIS_URL")
    reset_backend()


def _get_backend():
    """Lazy-initialise Redis or fall back to in-memory."""
    global _backend
    if _backend is not None:
        return _backend

    redis_url = _redis_url or os.getenv("REDIS_URL")
    if redis_url and not redis_url.startswith("memory://"):
        import redis as _redis
        try:
            _backend = _redis.from_url(redis_url, decode_responses=True)
            _backend.ping()
            logger.info("QA cache: using Redis at %s", redis_url.split("@")[-1])
        except _redis.RedisError as exc:
            logger.warning("Redis unavailable (%s) — falling back to memory cache", exc)
            _backend = _MemoryBackend()
    else:
        _backend = _MemoryBackend()
    return _backend


def reset_backend():
    """Forget the selected backend so the next call re-reads REDIS_URL."""
    global _backend
    _backend = None


# ── Default TTLs ─────────────────────────────────────────────────────────

OWNER_TTL = 3600       # 1 hour; content-addressed, safe to keep
EXECUTION_TTL = 300    # 5 minutes; longer than any refresh pass

_KEY_PREFIX = "qa:"


# ── Maintenance ───────────────────────────────────────────────────────────


def clear_all():
    """Flush entire cache (use sparingly — mainly for testing)."""
    _get_backend().flushdb()


def health_check():
    """Return cache backend status."""
    try:
        be = _get_backend()
        be.ping()
        backend_type = "redis" if not isinstance(be, _MemoryBackend) else "memory"
        return {"status": "ok", "backend": backend_type}
    except Exception as exc:
        return {"status": "error", "detail": str(exc)}


# ── Key builders ─────────────────────────────────────────────────────────


def attribute_hash(values) -> str:
    """Stable content hash of an attribute bag."""
    serialized = json.dumps(values, sort_keys=True, default=str, ensure_ascii=False)
    return hashlib.sha1(serialized.encode("utf-8")).hexdigest()


class QaMemoCache:
    """Memoization cache owned by one QA tracker.

    Owner keys are content-addressed: ``<identity>|attributehash:<sha1>``.
    Execution keys append a token generated by ``reset_execution_key()``:
    ``<owner key>|executionKey:<token>``. A fresh token per refresh pass
    makes every execution-scoped entry of the previous pass unreachable.
    """

    def __init__(self, backend=None, owner_ttl=OWNER_TTL, execution_ttl=EXECUTION_TTL):
        self._backend = backend
        self.owner_ttl = owner_ttl
        self.execution_ttl = execution_ttl
        self._execution_token = None

    @property
    def backend(self):
        return self._backend or _get_backend()

    @property
    def execution_token(self):
        return self._execution_token

    def reset_execution_key(self) -> str:
        self._execution_token = uuid.uuid4().hex
        return self._execution_token

    def owner_key(self, item, attributes) -> str:
        values = item.qa_fingerprint_values(sorted(attributes))
        return f"{_KEY_PREFIX}{item.qa_identity()}|attributehash:{attribute_hash(values)}"

    def execution_key(self, item, attributes) -> str:
        if self._execution_token is None:
            raise ExecutionKeyNotInitializedError()
        return f"{self.owner_key(item, attributes)}|executionKey:{self._execution_token}"

    def remember_owner(self, key, loader):
        return self._remember(key, self.owner_ttl, loader)

    def remember_execution(self, key, loader):
        return self._remember(key, self.execution_ttl, loader)

    def _remember(self, key, ttl, loader):
        be = self.backend
        raw = be.get(key)
        if raw is not None:
            try:
                value = json.loads(raw)
            except (json.JSONDecodeError, TypeError):
                value = None
            if value is not None:
                logger.debug("QA cache hit: %s", key)
                return value
        value = loader()
        if value is not None:
            be.setex(key, ttl, json.dumps(value))
        return value
