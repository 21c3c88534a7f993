"""
Repository selection.

The storage variant is chosen once at process start from config and the
resulting instances are injected into the session manager.
"""
from __future__ import annotations

from typing import Optional, Tuple

from models.db_storage import DBStorage
from repositories.base import TokenStore, UserRepository
from repositories.memory import InMemoryTokenStore, InMemoryUserRepository
from repositories.sql import SqlTokenStore, SqlUserRepository

BACKENDS = ("memory", "sql")


def build_repositories(backend: str, storage: Optional[DBStorage] = None) -> Tuple[UserRepository, TokenStore]:
    backend = (backend or "").lower()
    if backend == "memory":
        return InMemoryUserRepository(), InMemoryTokenStore()
    if backend == "sql":
        if storage is None:
            raise ValueError("sql backend requires a DBStorage handle")
        return SqlUserRepository(storage), SqlTokenStore(storage)
    raise ValueError(f"Unknown DB_BACKEND {backend!r}; expected one of {BACKENDS}")


__all__ = [
    "UserRepository",
    "TokenStore",
    "InMemoryUserRepository",
    "InMemoryTokenStore",
    "SqlUserRepository",
    "SqlTokenStore",
    "build_repositories",
]
