"""QA state blueprint.

Endpoint groups
───────────────
  Items        GET  /qa-items/<item_type>                                List items + status
  State        GET  /qa-items/<item_type>/<id>/qa-state                  QaState + label
               GET  /qa-items/<item_type>/<id>/qa-attributes             Governed attributes
  Refresh      POST /qa-items/<item_type>/<id>/qa-state/refresh          Progress + status
               POST /qa-items/<item_type>/<id>/qa-state/translations/refresh
  Manual       PUT  /qa-items/<item_type>/<id>/qa-state/status           Manual status
               PUT  /qa-items/<item_type>/<id>/qa-state/flags            Manual flags
               PUT  /qa-items/<item_type>/<id>/qa-state/attributes/<a>   Approve / proof
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from qa_state.blueprints import paginate_query
from qa_state.core.exceptions import (
    NoAssociatedRulesError,
    NotFoundError,
    StateSaveError,
    UnknownAttributeError,
    UnknownLanguageError,
    UnknownManualFlagError,
    UnknownScenarioError,
    UnknownStatusError,
    ValidationError,
)
from qa_state.models import db
from qa_state.services.cache_service import QaMemoCache
from qa_state.services.language import LanguageContext
from qa_state.services.qa_config import get_item_model, get_qa_config
from qa_state.services.qa_state_service import QaStateTracker
from qa_state.utils.errors import E, api_error

logger = logging.getLogger(__name__)

qa_state_bp = Blueprint("qa_state", __name__, url_prefix="/api/v1")


# ── Error handlers ───────────────────────────────────────────────────────


@qa_state_bp.errorhandler(NotFoundError)
def _not_found(exc):
    return api_error(E.NOT_FOUND, str(exc))


@qa_state_bp.errorhandler(ValidationError)
def _invalid(exc):
    return api_error(E.VALIDATION_INVALID, str(exc), details=exc.details)


@qa_state_bp.errorhandler(UnknownScenarioError)
@qa_state_bp.errorhandler(UnknownStatusError)
@qa_state_bp.errorhandler(UnknownManualFlagError)
@qa_state_bp.errorhandler(UnknownAttributeError)
@qa_state_bp.errorhandler(UnknownLanguageError)
def _unknown(exc):
    return api_error(E.QA_UNKNOWN, str(exc))


@qa_state_bp.errorhandler(NoAssociatedRulesError)
def _no_rules(exc):
    return api_error(E.QA_NO_RULES, str(exc), details={"scenario": exc.scenario})


@qa_state_bp.errorhandler(StateSaveError)
def _save_failed(exc):
    logger.error("QA state save failed: %s", exc)
    return api_error(E.QA_SAVE_FAILED, str(exc))


# ── Helpers ──────────────────────────────────────────────────────────────


def _get_item(item_type, item_id):
    model = get_item_model(item_type)
    item = db.session.get(model, item_id)
    if item is None:
        raise NotFoundError(resource=model.__name__, resource_id=item_id)
    return item


def _tracker(item):
    cfg = current_app.config
    return QaStateTracker(
        item,
        cache=QaMemoCache(
            owner_ttl=cfg.get("QA_CACHE_OWNER_TTL", 3600),
            execution_ttl=cfg.get("QA_CACHE_EXECUTION_TTL", 300),
        ),
        language_context=LanguageContext(cfg.get("QA_DEFAULT_LANGUAGE", "en")),
    )


def _state_payload(tracker):
    state = tracker.qa_state()
    payload = state.to_dict()
    payload["status_label"] = tracker.get_status_label()
    payload["item_identity"] = tracker.item.qa_identity()
    return payload


def _string_list(data, key):
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{key} must be a list of strings", details={key: value})
    return value


# ══════════════════════════════════════════════════════════════════
# 1.  Items & state
# ══════════════════════════════════════════════════════════════════


@qa_state_bp.route("/qa-items/<item_type>", methods=["GET"])
def list_qa_items(item_type):
    """List items of a type with their current QA status."""
    model = get_item_model(item_type)
    qa_config = get_qa_config(item_type)
    items, total = paginate_query(model.query.order_by(model.id), default_limit=50)
    result = []
    for item in items:
        state = item.qa_state
        status = state.status if state else None
        result.append({
            "id": item.id,
            "status": status,
            "status_label": qa_config.status(status).label if qa_config.has_status(status) else None,
            "progress": dict(state.progress or {}) if state else {},
        })
    return jsonify({"items": result, "total": total})


@qa_state_bp.route("/qa-items/<item_type>/<int:item_id>/qa-state", methods=["GET"])
def get_qa_state(item_type, item_id):
    tracker = _tracker(_get_item(item_type, item_id))
    payload = _state_payload(tracker)
    db.session.commit()
    return jsonify(payload)


@qa_state_bp.route("/qa-items/<item_type>/<int:item_id>/qa-attributes", methods=["GET"])
def get_qa_attributes(item_type, item_id):
    """Governed attributes of ?scenario=, or of every scenario."""
    tracker = _tracker(_get_item(item_type, item_id))
    scenario = request.args.get("scenario") or None
    return jsonify({
        "scenario": scenario,
        "attributes": sorted(tracker.qa_attributes(scenario)),
    })


# ══════════════════════════════════════════════════════════════════
# 2.  Refresh
# ══════════════════════════════════════════════════════════════════


@qa_state_bp.route("/qa-items/<item_type>/<int:item_id>/qa-state/refresh", methods=["POST"])
def refresh_qa_state(item_type, item_id):
    data = request.get_json(silent=True) or {}
    scenarios = _string_list(data, "scenarios")
    language = data.get("language")
    if language is not None and not isinstance(language, str):
        raise ValidationError("language must be a string", details={"language": language})

    tracker = _tracker(_get_item(item_type, item_id))
    tracker.refresh_qa_state(scenarios=scenarios, language=language)
    return jsonify(_state_payload(tracker))


@qa_state_bp.route(
    "/qa-items/<item_type>/<int:item_id>/qa-state/translations/refresh", methods=["POST"],
)
def refresh_translation_progress(item_type, item_id):
    data = request.get_json(silent=True) or {}
    languages = _string_list(data, "languages")
    scenarios = _string_list(data, "scenarios")

    tracker = _tracker(_get_item(item_type, item_id))
    tracker.refresh_translation_progress(languages=languages, scenarios=scenarios)
    return jsonify(_state_payload(tracker))


# ══════════════════════════════════════════════════════════════════
# 3.  Manual status, flags and attribute marks
# ══════════════════════════════════════════════════════════════════


@qa_state_bp.route("/qa-items/<item_type>/<int:item_id>/qa-state/status", methods=["PUT"])
def set_status(item_type, item_id):
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status or not isinstance(status, str):
        return api_error(E.VALIDATION_REQUIRED, "status is required")

    tracker = _tracker(_get_item(item_type, item_id))
    tracker.save(tracker.set_manual_status(status))
    logger.info("Manual status set: %s -> %s", tracker.item.qa_identity(), status)
    return jsonify(_state_payload(tracker))


@qa_state_bp.route("/qa-items/<item_type>/<int:item_id>/qa-state/flags", methods=["PUT"])
def set_flags(item_type, item_id):
    data = request.get_json(silent=True) or {}
    if not data:
        return api_error(E.VALIDATION_REQUIRED, "at least one flag is required")
    for flag, value in data.items():
        if value is not None and not isinstance(value, bool):
            raise ValidationError("flag values must be true, false or null", details={flag: value})

    tracker = _tracker(_get_item(item_type, item_id))
    for flag, value in data.items():
        tracker.set_manual_flag(flag, value)
    tracker.save()
    return jsonify(_state_payload(tracker))


@qa_state_bp.route(
    "/qa-items/<item_type>/<int:item_id>/qa-state/attributes/<attribute>", methods=["PUT"],
)
def mark_attribute(item_type, item_id, attribute):
    data = request.get_json(silent=True) or {}
    marks = {k: data[k] for k in ("approved", "proofed") if k in data}
    if not marks:
        return api_error(E.VALIDATION_REQUIRED, "approved or proofed is required")
    for key, value in marks.items():
        if value is not None and not isinstance(value, bool):
            raise ValidationError(f"{key} must be true, false or null", details={key: value})

    tracker = _tracker(_get_item(item_type, item_id))
    tracker.save(tracker.mark_attribute(attribute, **marks))
    return jsonify(_state_payload(tracker))
