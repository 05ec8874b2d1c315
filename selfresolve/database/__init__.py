"""
Persistence for questions, estimates, awards and participant totals.

This package owns the SQLAlchemy schema, the Alembic migrations that create
it, and the repository helpers the service layer calls inside its
transactions.
"""
from .init import initialize
from .dbm import DBM

__all__ = ["initialize", "DBM"]
