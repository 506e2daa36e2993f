"""
SOPFlow
Shared Flask-SQLAlchemy instance.

Every model module imports ``db`` from here so a single metadata object
backs ``db.create_all()`` and Alembic autogenerate.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
