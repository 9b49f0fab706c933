"""
QA State Tracking Service
Shared SQLAlchemy extension instance.

Usage:
    from qa_state.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
