"""
Grievance Desk — model package.

``db`` is the single Flask-SQLAlchemy handle shared by every model module.
Domain modules are imported by ``create_app()`` so that metadata is complete
before ``db.create_all()`` runs.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
