"""
Shared pytest fixtures for the QA state test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup + QA cache flush (autouse)
    - client: Flask test client (function-scoped)
    - content_item: Persisted ContentItem that passes every scenario
    - stub_item / stub_config / memory_gateway: DB-free engine doubles
"""

import itertools

import pytest

from qa_state import create_app
from qa_state.models import db as _db
from qa_state.models.content import ContentItem
from qa_state.models.qa_state import QaItemMixin
from qa_state.services import cache_service
from qa_state.services.qa_config import QaConfig, Status
from qa_state.services.qa_rules import rule


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, flush QA cache, recreate tables after."""
    with app.app_context():
        cache_service.clear_all()
        yield
        cache_service.clear_all()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def content_item():
    """A stored ContentItem that is valid in every scenario."""
    item = ContentItem(
        slug="hello-world",
        title="Hello world",
        summary="A short greeting.",
        body="The full greeting text.",
        translations={"es": {"title": "Hola mundo"}},
    )
    _db.session.add(item)
    _db.session.commit()
    return item


# ── DB-free doubles for engine tests ─────────────────────────────────────


class StubItem(QaItemMixin):
    """Plain-object item; attributes are set from keyword arguments."""

    __qa_item_type__ = "stub_item"

    def __init__(self, id=None, **values):
        self.id = id
        self.qa_state = None
        for name, value in values.items():
            setattr(self, name, value)


class CheckCounter:
    """Counts how often rule checks run."""

    def __init__(self):
        self.calls = 0

    def required(self, value):
        self.calls += 1
        return value not in (None, "")


class MemoryGateway:
    """In-memory QaState persistence with an optional failing save."""

    def __init__(self, fail_saves=False):
        self.fail_saves = fail_saves
        self.saved = {}
        self.save_calls = 0
        self._ids = itertools.count(1)

    def load(self, item):
        return item.qa_state

    def create(self, state):
        state.id = next(self._ids)
        return state.id

    def attach(self, item, state):
        item.qa_state = state

    def save(self, state):
        self.save_calls += 1
        if self.fail_saves:
            return False
        self.saved[state.id] = {"status": state.status, "progress": dict(state.progress or {})}
        return True

    def reload(self, item):
        pass


def build_stub_config(scenario_attributes, statuses=None, counter=None, manual_flags=()):
    """QaConfig with one ``required`` rule per scenario.

    ``scenario_attributes`` maps scenario → attribute names, in scenario order.
    """
    counter = counter or CheckCounter()
    rules = tuple(
        rule(attributes, on=(scenario,), check=counter.required, message="cannot be blank")
        for scenario, attributes in scenario_attributes.items()
        if attributes
    )
    scenarios = tuple(scenario_attributes)
    if statuses is None:
        statuses = (
            Status.automatic("temporary", "Temporary"),
            Status.automatic("draft", "Draft", ("draft",)),
            Status.automatic("reviewable", "Reviewable", ("draft", "reviewable")),
            Status.automatic("publishable", "Publishable", ("draft", "reviewable", "publishable")),
        )
    return QaConfig(
        item_type="stub_item",
        scenarios=scenarios,
        statuses=statuses,
        rules=rules,
        manual_flags=manual_flags,
    )


@pytest.fixture()
def check_counter():
    return CheckCounter()


@pytest.fixture()
def make_stub_config():
    return build_stub_config


@pytest.fixture()
def make_stub_item():
    return StubItem


@pytest.fixture()
def stub_config(check_counter):
    """draft governs a; reviewable a, b; publishable a..e."""
    return build_stub_config(
        {
            "draft": ("a",),
            "reviewable": ("a", "b"),
            "publishable": ("a", "b", "c", "d", "e"),
        },
        counter=check_counter,
        manual_flags=("candidate_for_public_status",),
    )


@pytest.fixture()
def stub_item():
    return StubItem(a="x", b="y", c="z", d=None, e=None)


@pytest.fixture()
def memory_gateway():
    return MemoryGateway()
