import pytest

from utils.security import CredentialHasher, assess_strength


def test_hash_verifies_and_rejects_other_password(hasher):
    digest = hasher.hash("SecurePass123!")
    assert hasher.verify("SecurePass123!", digest)
    assert not hasher.verify("SecurePass124!", digest)


def test_hash_is_salted_per_call(hasher):
    first = hasher.hash("SecurePass123!")
    second = hasher.hash("SecurePass123!")
    assert first != second
    assert hasher.verify("SecurePass123!", first)
    assert hasher.verify("SecurePass123!", second)


def test_plaintext_never_in_digest(hasher):
    assert "SecurePass123!" not in hasher.hash("SecurePass123!")


@pytest.mark.parametrize("digest", ["", "not-a-hash", "$argon2id$v=19$garbage", None, 42])
def test_verify_malformed_digest_returns_false(hasher, digest):
    assert hasher.verify("SecurePass123!", digest) is False


def test_needs_rehash_when_cost_changes(hasher):
    digest = hasher.hash("SecurePass123!")
    assert not hasher.needs_rehash(digest)
    stronger = CredentialHasher(time_cost=2, memory_cost=16, parallelism=1)
    assert stronger.needs_rehash(digest)
    assert not stronger.needs_rehash("not-a-hash")


def test_strong_password_has_no_reasons():
    result = assess_strength("SecurePass123!")
    assert result.valid
    assert result.reasons == []


def test_every_unmet_rule_is_reported():
    result = assess_strength("abc")
    assert not result.valid
    assert len(result.reasons) == 4  # length, upper, digit, symbol
    assert any("8 characters" in r for r in result.reasons)
    assert any("uppercase" in r for r in result.reasons)
    assert any("number" in r for r in result.reasons)
    assert any("special" in r for r in result.reasons)


def test_missing_uppercase_only():
    result = assess_strength("securepass123!")
    assert result.reasons == ["Password must contain at least one uppercase letter."]


def test_any_non_alphanumeric_counts_as_symbol():
    assert assess_strength("SecurePass123~").valid
    assert assess_strength("SecurePass123 ").valid


def test_hasher_exposes_strength_policy(hasher):
    assert hasher.assess_strength("short").valid is False
