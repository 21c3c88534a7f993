from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, Optional

from models.base_model import utcnow
from models.refresh_token import RefreshToken
from models.user import User
from repositories.base import TokenStore, UserRepository
from utils.errors import ConflictError, NotFoundError, StorageError

_USER_FIELDS = {"first_name", "last_name", "password_hash", "is_active", "last_login_at"}


class InMemoryUserRepository(UserRepository):
    """Thread-safe dict-backed user store, for dev and tests."""

    def __init__(self):
        self._by_id: Dict[str, User] = {}
        self._lock = threading.RLock()

    def create(self, email, password_hash, first_name, last_name):
        with self._lock:
            if self._find_email(email) is not None:
                raise ConflictError("User with this email already exists")
            user = User(
                email=email,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
                is_active=True,
            )
            self._by_id[user.id] = user
            return user

    def find_by_email(self, email):
        with self._lock:
            return self._find_email(email)

    def find_by_id(self, user_id):
        with self._lock:
            return self._by_id.get(user_id)

    def update(self, user_id, **fields):
        unknown = set(fields) - _USER_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        with self._lock:
            user = self._by_id.get(user_id)
            if user is None:
                raise NotFoundError("User not found")
            for key, value in fields.items():
                setattr(user, key, value)
            user.updated_at = utcnow()
            return user

    def touch_last_login(self, user_id, when):
        return self.update(user_id, last_login_at=when)

    def _find_email(self, email):
        for user in self._by_id.values():
            if user.email == email:
                return user
        return None


class InMemoryTokenStore(TokenStore):
    """Thread-safe refresh token store with a coarse-grained lock."""

    def __init__(self):
        self._tokens: Dict[str, RefreshToken] = {}
        self._lock = threading.RLock()

    def create(self, user_id, token, expires_at):
        with self._lock:
            if token in self._tokens:
                raise StorageError("Refresh token already stored")
            record = RefreshToken(user_id=user_id, token=token, expires_at=expires_at, revoked=False)
            self._tokens[token] = record
            return record

    def find_by_value(self, token):
        with self._lock:
            return self._tokens.get(token)

    def revoke(self, token):
        with self._lock:
            record = self._tokens.get(token)
            if record is None or record.revoked:
                return False
            record.revoked = True
            record.revoked_at = utcnow()
            return True

    def revoke_all_for_user(self, user_id):
        revoked = 0
        with self._lock:
            now = utcnow()
            for record in self._tokens.values():
                if record.user_id == user_id and not record.revoked:
                    record.revoked = True
                    record.revoked_at = now
                    revoked += 1
        return revoked

    def sweep_expired(self, now: Optional[datetime] = None):
        now = now or utcnow()
        with self._lock:
            expired = [value for value, record in self._tokens.items() if record.is_expired(now)]
            for value in expired:
                del self._tokens[value]
        return len(expired)
