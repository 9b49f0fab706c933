"""
Flask-Migrate / Alembic entry point.

Usage:
    flask db upgrade
    flask refresh-qa-state content_item --lang es
"""

from qa_state import create_app

app = create_app()
