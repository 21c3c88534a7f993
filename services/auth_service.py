"""
Auth session manager.

Orchestrates registration, login, refresh-token rotation, logout and the
profile operations on top of the credential hasher, the token issuer, the
refresh token store and the user repository. A live session is nothing more
than a valid access token plus, for renewal, a stored refresh token; there
is no server-side session object.

Every failure leaves as exactly one typed AuthError subclass (utils.errors).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from models.schemas.user import UserOutSchema
from models.user import User
from repositories.base import TokenStore, UserRepository
from utils.errors import ConflictError, InvalidCredentials, NotFoundError, Unauthorized, ValidationFailed
from utils.security import CredentialHasher
from utils.tokens import TokenError, TokenExpired, TokenIssuer

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("first_name", "last_name", "password", "is_active")

user_out_schema = UserOutSchema()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthSessionManager:
    def __init__(
        self,
        users: UserRepository,
        tokens: TokenStore,
        hasher: CredentialHasher,
        issuer: TokenIssuer,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._users = users
        self._tokens = tokens
        self._hasher = hasher
        self._issuer = issuer
        self._clock = clock or _utcnow
        # verified against when the email is unknown so both login failures cost the same
        self._dummy_hash = hasher.hash("dummy-password-for-timing")

    # -- registration / login -------------------------------------------------

    def register(self, email: str, password: str, first_name: str, last_name: str) -> Dict[str, Any]:
        if self._users.find_by_email(email) is not None:
            logger.info("Registration rejected: email already registered")
            raise ConflictError("User with this email already exists")

        strength = self._hasher.assess_strength(password)
        if not strength.valid:
            raise ValidationFailed("Password does not meet the strength policy", reasons=strength.reasons)

        user = self._users.create(
            email=email,
            password_hash=self._hasher.hash(password),
            first_name=first_name,
            last_name=last_name,
        )
        logger.info("Registered user %s", user.id)
        return self.public_view(user)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        user = self._users.find_by_email(email)
        password_ok = self._hasher.verify(password, user.password_hash if user else self._dummy_hash)
        if user is None or not password_ok or not user.is_active:
            logger.warning("Failed login attempt")
            raise InvalidCredentials("Invalid email or password")

        user = self._users.touch_last_login(user.id, self._clock())
        if self._hasher.needs_rehash(user.password_hash):
            user = self._users.update(user.id, password_hash=self._hasher.hash(password))

        session = self._start_session(user)
        logger.info("User %s logged in", user.id)
        return session

    # -- refresh / logout -----------------------------------------------------

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        try:
            claims = self._issuer.verify_refresh(refresh_token)
        except TokenError as exc:
            logger.info("Refresh rejected: %s", exc)
            raise InvalidCredentials("Invalid or expired refresh token")

        # the store is the authority of record, whatever the signature says
        record = self._tokens.find_by_value(refresh_token)
        if record is None:
            self._reject_refresh("unknown token")
        if record.revoked:
            self._reject_refresh("token already revoked")
        if record.is_expired(self._clock()):
            self._reject_refresh("stored expiry passed")
        if record.user_id != claims.get("sub"):
            self._reject_refresh("subject mismatch")

        # first caller to flip the record wins a concurrent refresh race
        if not self._tokens.revoke(refresh_token):
            self._reject_refresh("lost rotation race")

        user = self._users.find_by_id(record.user_id)
        if user is None or not user.is_active:
            self._reject_refresh("user missing or inactive")

        session = self._start_session(user)
        logger.info("Rotated refresh token for user %s", user.id)
        return session

    def logout(self, refresh_token: str) -> None:
        """Revoke the refresh token; never reveals whether it was valid."""
        if isinstance(refresh_token, str) and refresh_token:
            self._tokens.revoke(refresh_token)
        logger.info("Logout processed")

    # -- profile --------------------------------------------------------------

    def get_profile(self, access_token: str) -> Dict[str, Any]:
        user = self._user_for_access_token(access_token)
        return self.public_view(user)

    def update_profile(self, access_token: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        user = self._user_for_access_token(access_token)

        changes = {k: v for k, v in (patch or {}).items() if k in UPDATABLE_FIELDS and v is not None}
        if not changes:
            raise ValidationFailed(
                "At least one field (first_name, last_name, password, is_active) must be provided"
            )
        fields = {}
        for key in ("first_name", "last_name"):
            if key in changes:
                if not isinstance(changes[key], str) or not changes[key].strip():
                    raise ValidationFailed(f"{key} must be a non-empty string")
                fields[key] = changes[key].strip()
        if "is_active" in changes:
            if not isinstance(changes["is_active"], bool):
                raise ValidationFailed("is_active must be a boolean")
            fields["is_active"] = changes["is_active"]
        if "password" in changes:
            strength = self._hasher.assess_strength(changes["password"])
            if not strength.valid:
                raise ValidationFailed("Password does not meet the strength policy", reasons=strength.reasons)
            fields["password_hash"] = self._hasher.hash(changes["password"])

        user = self._users.update(user.id, **fields)
        if "password_hash" in fields or fields.get("is_active") is False:
            revoked = self._tokens.revoke_all_for_user(user.id)
            logger.info("Revoked %d refresh token(s) for user %s after credential change", revoked, user.id)
        return self.public_view(user)

    def verify(self, access_token: str) -> Dict[str, Any]:
        user = self._user_for_access_token(access_token)
        if not user.is_active:
            raise Unauthorized("User account is deactivated")
        return {"user": self.public_view(user), "is_authenticated": True}

    # -- maintenance ----------------------------------------------------------

    def sweep_expired_tokens(self) -> int:
        removed = self._tokens.sweep_expired(self._clock())
        logger.info("Swept %d expired refresh token(s)", removed)
        return removed

    # -- helpers --------------------------------------------------------------

    @staticmethod
    def public_view(user: User) -> Dict[str, Any]:
        return user_out_schema.dump(user)

    def _start_session(self, user: User) -> Dict[str, Any]:
        access_token = self._issuer.issue_access({"sub": user.id, "email": user.email})
        refresh_token = self._issuer.issue_refresh({"sub": user.id})
        # persisted before the caller ever sees it
        self._tokens.create(user.id, refresh_token, self._clock() + self._issuer.refresh_ttl)
        return {
            "user": self.public_view(user),
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": int(self._issuer.access_ttl.total_seconds()),
        }

    def _user_for_access_token(self, access_token: str) -> User:
        try:
            claims = self._issuer.verify_access(access_token)
        except TokenExpired:
            raise Unauthorized("Access token expired")
        except TokenError:
            raise Unauthorized("Invalid access token")
        user = self._users.find_by_id(claims["sub"])
        if user is None:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def _reject_refresh(reason: str):
        logger.info("Refresh rejected: %s", reason)
        raise InvalidCredentials("Invalid or expired refresh token")
