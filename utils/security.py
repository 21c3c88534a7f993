"""
security helpers:
- Argon2 password hashing via argon2-cffi
- password strength policy
"""
from __future__ import annotations

import re
from typing import List, NamedTuple

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

MIN_PASSWORD_LENGTH = 8

# (pattern that must match, reason reported when it does not), checked in order
_STRENGTH_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter."),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter."),
    (re.compile(r"[0-9]"), "Password must contain at least one number."),
    (re.compile(r"[^A-Za-z0-9]"), "Password must contain at least one special character."),
)


class PasswordStrength(NamedTuple):
    valid: bool
    reasons: List[str]


def assess_strength(password: str) -> PasswordStrength:
    """Check a plaintext password against the policy.

    Returns one reason per unmet rule; reasons is empty iff valid.
    """
    if not isinstance(password, str):
        password = ""
    reasons = []
    if len(password) < MIN_PASSWORD_LENGTH:
        reasons.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
    for pattern, reason in _STRENGTH_RULES:
        if not pattern.search(password):
            reasons.append(reason)
    return PasswordStrength(valid=not reasons, reasons=reasons)


class CredentialHasher:
    """Salted argon2id hashing with a fixed cost."""

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._ph = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )

    def hash(self, password: str) -> str:
        """Hash a plaintext password using Argon2
        """
        return self._ph.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """ Verify a plaintext password using argon2; malformed hashes simply fail
        """
        if not isinstance(password, str) or not isinstance(password_hash, str) or not password_hash:
            return False
        try:
            return self._ph.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        try:
            return self._ph.check_needs_rehash(password_hash)
        except (InvalidHashError, ValueError):
            return False

    assess_strength = staticmethod(assess_strength)
