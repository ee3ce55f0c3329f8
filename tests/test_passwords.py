"""Unit tests for auth/passwords.py -- bcrypt hashing and verification.

Covers:
- Hashes are salted (same input, different output) and verify correctly
- Cost factor comes from Settings.bcrypt_rounds
- Passwords past bcrypt's 72-byte window still hash and verify
- Malformed stored hash raises InternalError rather than returning False
"""

import pytest

from auth.passwords import hash_password, verify_dummy, verify_password
from core.config import get_settings
from core.errors import InternalError


def test_hash_is_salted() -> None:
    assert hash_password("secret1") != hash_password("secret1")


def test_hash_never_contains_plaintext() -> None:
    assert "secret1" not in hash_password("secret1")


def test_verify_matches_original() -> None:
    hashed = hash_password("secret1")
    assert verify_password("secret1", hashed) is True


def test_verify_rejects_wrong_password() -> None:
    hashed = hash_password("secret1")
    assert verify_password("secret2", hashed) is False


def test_cost_factor_from_settings() -> None:
    rounds = get_settings().bcrypt_rounds
    assert hash_password("secret1").startswith(f"$2b${rounds:02d}$")


def test_long_password_round_trips() -> None:
    long_pw = "p" * 100
    hashed = hash_password(long_pw)
    assert verify_password(long_pw, hashed) is True


def test_non_ascii_password() -> None:
    hashed = hash_password("pässwörd-🔑")
    assert verify_password("pässwörd-🔑", hashed) is True
    assert verify_password("passwor-d", hashed) is False


def test_malformed_hash_raises_internal_error() -> None:
    with pytest.raises(InternalError):
        verify_password("secret1", "not-a-bcrypt-hash")


def test_verify_dummy_returns_nothing() -> None:
    assert verify_dummy("anything") is None
