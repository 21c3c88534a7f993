"""
Storage contracts consumed by the session manager.

Each contract has an in-memory and an SQL variant; the variant is picked
once at startup (see repositories.build_repositories) and business logic
never asks which one it got.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from models.refresh_token import RefreshToken
from models.user import User


class UserRepository(ABC):

    @abstractmethod
    def create(self, email: str, password_hash: str, first_name: str, last_name: str) -> User:
        """Create an active user. Raises ConflictError on a duplicate email."""

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[User]:
        """Case-sensitive exact match."""

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def update(self, user_id: str, **fields) -> User:
        """Apply fields and bump updated_at. Raises NotFoundError."""

    @abstractmethod
    def touch_last_login(self, user_id: str, when: datetime) -> User:
        ...


class TokenStore(ABC):

    @abstractmethod
    def create(self, user_id: str, token: str, expires_at: datetime) -> RefreshToken:
        """Persist a new non-revoked refresh token."""

    @abstractmethod
    def find_by_value(self, token: str) -> Optional[RefreshToken]:
        """Exact lookup; None when absent."""

    @abstractmethod
    def revoke(self, token: str) -> bool:
        """
        Idempotent revoke. Returns True only for the call that moved the
        record from live to revoked; absent or already revoked gives False.
        """

    @abstractmethod
    def revoke_all_for_user(self, user_id: str) -> int:
        """Revoke every live token of a user, returning how many changed."""

    @abstractmethod
    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Delete records whose expiry has passed, returning how many went."""
