#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixin for the to-do API auth models.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps, timezone-aware UTC
- the same classes back both storage variants: the SQL repositories persist
  them through DBStorage, the in-memory ones keep transient instances

Notes:
- Timestamps are set on the Python side so both variants agree on them.
- SQLite stores datetimes without tzinfo; use as_utc() before comparing
  a value read back from the database with an aware datetime.
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes coming back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class BaseModel:
    """
    Base mixin for all persistent models.

    - id, created_at, updated_at
    - kwargs constructor that also works for transient (never flushed) objects
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session.
        Column defaults only fire on flush, so id and timestamps are filled in
        here to keep in-memory instances complete.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()
        now = utcnow()
        if getattr(self, "created_at", None) is None:
            self.created_at = now
        if getattr(self, "updated_at", None) is None:
            self.updated_at = now

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id})"
