from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.base_model import utcnow
from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from models.user import User
from repositories.base import TokenStore, UserRepository
from utils.errors import ConflictError, NotFoundError, StorageError

logger = logging.getLogger(__name__)

_USER_FIELDS = {"first_name", "last_name", "password_hash", "is_active", "last_login_at"}


@contextmanager
def _guard(storage: DBStorage, action: str):
    """Roll back and surface backend failures as StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        storage.rollback()
        logger.exception("Storage failure during %s", action)
        raise StorageError(f"Storage failure during {action}") from exc


class SqlUserRepository(UserRepository):
    def __init__(self, storage: DBStorage):
        self._storage = storage

    def create(self, email, password_hash, first_name, last_name):
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            is_active=True,
        )
        with _guard(self._storage, "user create"):
            try:
                self._storage.new(user)
                self._storage.save()
            except IntegrityError as exc:
                # DBStorage.save already rolled back
                raise ConflictError("User with this email already exists") from exc
        return user

    def find_by_email(self, email):
        with _guard(self._storage, "user lookup"):
            session = self._storage.get_session()
            return (
                session.query(User)
                .filter(User.email == email)
                .populate_existing()
                .first()
            )

    def find_by_id(self, user_id):
        with _guard(self._storage, "user lookup"):
            session = self._storage.get_session()
            return (
                session.query(User)
                .filter(User.id == user_id)
                .populate_existing()
                .first()
            )

    def update(self, user_id, **fields):
        unknown = set(fields) - _USER_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        with _guard(self._storage, "user update"):
            user = self._storage.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")
            for key, value in fields.items():
                setattr(user, key, value)
            user.updated_at = utcnow()
            self._storage.new(user)
            self._storage.save()
            return user

    def touch_last_login(self, user_id, when):
        return self.update(user_id, last_login_at=when)


class SqlTokenStore(TokenStore):
    def __init__(self, storage: DBStorage):
        self._storage = storage

    def create(self, user_id, token, expires_at):
        record = RefreshToken(user_id=user_id, token=token, expires_at=expires_at, revoked=False)
        with _guard(self._storage, "refresh token create"):
            self._storage.new(record)
            self._storage.save()
        return record

    def find_by_value(self, token):
        with _guard(self._storage, "refresh token lookup"):
            session = self._storage.get_session()
            return (
                session.query(RefreshToken)
                .filter(RefreshToken.token == token)
                .populate_existing()
                .first()
            )

    def revoke(self, token):
        # single conditional UPDATE: only one concurrent caller can match revoked == False
        with _guard(self._storage, "refresh token revoke"):
            session = self._storage.get_session()
            changed = (
                session.query(RefreshToken)
                .filter(RefreshToken.token == token, RefreshToken.revoked.is_(False))
                .update(
                    {RefreshToken.revoked: True, RefreshToken.revoked_at: utcnow()},
                    synchronize_session="fetch",
                )
            )
            self._storage.save()
        return changed == 1

    def revoke_all_for_user(self, user_id):
        with _guard(self._storage, "refresh token revoke"):
            session = self._storage.get_session()
            changed = (
                session.query(RefreshToken)
                .filter(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
                .update(
                    {RefreshToken.revoked: True, RefreshToken.revoked_at: utcnow()},
                    synchronize_session="fetch",
                )
            )
            self._storage.save()
        return changed

    def sweep_expired(self, now: Optional[datetime] = None):
        now = now or utcnow()
        with _guard(self._storage, "refresh token sweep"):
            session = self._storage.get_session()
            removed = (
                session.query(RefreshToken)
                .filter(RefreshToken.expires_at <= now)
                .delete(synchronize_session="fetch")
            )
            self._storage.save()
        return removed
