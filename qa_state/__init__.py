"""
QA State Tracking Service
Flask Application Factory.

Usage:
    from qa_state import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask
from flask_migrate import Migrate

from qa_state.config import config
from qa_state.models import db
from qa_state.middleware.logging_config import configure_logging

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_cls = config[config_name]
    app.config.from_object(config_cls() if config_name == "production" else config_cls)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)

    from qa_state.services.cache_service import init_cache
    init_cache(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from qa_state.models import qa_state as _qa_state_models   # noqa: F401
    from qa_state.models import content as _content_models     # noqa: F401
    from qa_state.models._qa_state_sync import register_all
    register_all()

    if app.config.get("SQLALCHEMY_DATABASE_URI", "").startswith("sqlite:///") and not app.testing:
        os.makedirs(app.instance_path, exist_ok=True)

    with app.app_context():
        db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from qa_state.blueprints.health_bp import health_bp
    from qa_state.blueprints.qa_state_bp import qa_state_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(qa_state_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("refresh-qa-state")
    @click.argument("item_type")
    @click.option("--lang", "language", default=None, help="Validate as if editing in this language.")
    @click.option("--scenario", "scenarios", multiple=True, help="Limit to scenario (repeatable).")
    @click.option("--translations", is_flag=True, help="Also refresh per-language translation progress.")
    def refresh_qa_state_cmd(item_type, language, scenarios, translations):
        """Refresh the QA state of every stored item of ITEM_TYPE."""
        from qa_state.services.qa_config import get_item_model
        from qa_state.services.qa_state_service import QaStateTracker

        model = get_item_model(item_type)
        count = 0
        for item in model.query.order_by(model.id).all():
            tracker = QaStateTracker(item)
            state = tracker.refresh_qa_state(scenarios=scenarios or None, language=language)
            if translations:
                tracker.refresh_translation_progress(scenarios=scenarios or None)
            click.echo(f"{item.qa_identity()}: {state.status} {state.progress}")
            count += 1
        logger.info("Refreshed qa state of %s %s item(s).", count, item_type)

    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "QA State Tracking Service"}

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found"}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    return app
