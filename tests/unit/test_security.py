"""Tests for password hashing, tokens and ownership checks."""

import jwt
import pytest

from utils.config import settings
from utils.errors import Forbidden, Unauthorized
from utils.security import (
    Identity,
    decode_token,
    ensure_owner_or_admin,
    hash_password,
    issue_token,
    verify_password,
)

USER = {"id": "u-1", "email": "ada@example.com", "role": "founder"}


def test_password_round_trip():
    hashed = hash_password("Secret123")
    assert hashed != "Secret123"
    assert verify_password("Secret123", hashed)
    assert not verify_password("Secret124", hashed)


def test_malformed_hash_does_not_verify():
    assert not verify_password("Secret123", "not-a-bcrypt-hash")


def test_token_carries_identity():
    identity = decode_token(issue_token(USER))
    assert identity == Identity(id="u-1", email="ada@example.com", role="founder")
    assert not identity.is_admin


def test_expired_token():
    token = issue_token(USER, expires_minutes=-1)
    with pytest.raises(Unauthorized, match="expired"):
        decode_token(token)


def test_wrong_secret():
    token = jwt.encode({"id": "u-1", "email": "x", "role": "admin"}, "other-secret", algorithm="HS256")
    with pytest.raises(Unauthorized):
        decode_token(token)


def test_missing_claims():
    token = jwt.encode({"id": "u-1"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(Unauthorized):
        decode_token(token)


def test_owner_or_admin():
    owner = Identity("u-1", "a@example.com", "learner")
    admin = Identity("u-2", "b@example.com", "admin")
    stranger = Identity("u-3", "c@example.com", "learner")

    ensure_owner_or_admin(owner, "u-1")
    ensure_owner_or_admin(admin, "u-1")
    with pytest.raises(Forbidden):
        ensure_owner_or_admin(stranger, "u-1", "delete this file")
