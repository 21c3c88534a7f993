"""
JWT issuing/verification via PyJWT.

Access and refresh tokens are signed with different secrets, so leaking one
secret never lets an attacker mint the other kind of token.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Base for token verification failures."""


class TokenExpired(TokenError):
    pass


class TokenInvalid(TokenError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
        issuer: str = "todo-api",
        audience: str = "todo-app",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("TokenIssuer requires non-empty secrets")
        if access_secret == refresh_secret:
            raise ValueError("access and refresh tokens must use distinct secrets")
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self._clock = clock or _utcnow

    @property
    def access_ttl(self) -> timedelta:
        return self._ttls[ACCESS]

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[REFRESH]

    def issue_access(self, claims: Dict[str, Any]) -> str:
        return self._issue(claims, ACCESS)

    def issue_refresh(self, claims: Dict[str, Any]) -> str:
        return self._issue(claims, REFRESH)

    def verify_access(self, token: str) -> Dict[str, Any]:
        return self._verify(token, ACCESS)

    def verify_refresh(self, token: str) -> Dict[str, Any]:
        return self._verify(token, REFRESH)

    def _issue(self, claims: Dict[str, Any], token_type: str) -> str:
        if not claims or not claims.get("sub"):
            raise ValueError("claims must carry the user id as 'sub'")
        now = self._clock()
        payload = dict(claims)
        payload.update(
            {
                "sub": str(claims["sub"]),
                "iss": self.issuer,
                "aud": self.audience,
                "iat": int(now.timestamp()),
                "exp": int((now + self._ttls[token_type]).timestamp()),
                "type": token_type,
                "jti": secrets.token_urlsafe(32),
            }
        )
        return jwt.encode(payload, self._secrets[token_type], algorithm=self.algorithm)

    def _verify(self, token: str, expected_type: str) -> Dict[str, Any]:
        """
        Decode and validate a JWT. Raises TokenExpired past exp, TokenInvalid
        for anything else wrong (signature, audience, structure, type).
        """
        if not isinstance(token, str) or not token:
            raise TokenInvalid("Token missing")
        try:
            decoded = jwt.decode(
                token,
                self._secrets[expected_type],
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired("Token expired")
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid(f"Invalid token: {exc}")

        if decoded.get("type") != expected_type:
            raise TokenInvalid("Wrong token type")
        return decoded
