"""Database module for SQLite persistence.

Provides:
- Database connection management
- Schema initialization
- Repository functions for modules, topics, learners, progress and feedback
"""

from learning.db.database import get_db, init_db

__all__ = ["get_db", "init_db"]
