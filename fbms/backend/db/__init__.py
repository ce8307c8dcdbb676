"""Database package – ORM models, engine/session wrapper and seed data."""

from __future__ import annotations

from fbms.backend.db.models import Base, utcnow
from fbms.backend.db.session import Database, next_sequence

__all__ = ["Base", "Database", "next_sequence", "utcnow"]
