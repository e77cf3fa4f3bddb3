"""
Password hashing and session token tests: pure functions, no database.
"""
from datetime import datetime, timedelta, timezone

from jose import jwt

from conduit.config import settings
from conduit.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    parse_authorization_header,
    verify_password,
)


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def test_hash_and_verify_password():
    hashed = hash_password("password123")
    assert hashed != "password123"
    assert hashed.startswith("$2")
    assert verify_password("password123", hashed)
    assert not verify_password("password124", hashed)


def test_hash_is_salted():
    assert hash_password("same-password") != hash_password("same-password")


def test_long_passwords_use_every_byte():
    """Passwords past bcrypt's 72-byte input limit must still differ."""
    base = "x" * 80
    hashed = hash_password(base + "a")
    assert verify_password(base + "a", hashed)
    assert not verify_password(base + "b", hashed)


def test_verify_against_non_bcrypt_value():
    assert verify_password("password123", "not-a-bcrypt-hash") is False


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

def test_token_round_trip():
    token = create_access_token(42)
    assert decode_access_token(token) == 42


def test_token_claims():
    token = create_access_token(7)
    claims = jwt.get_unverified_claims(token)
    assert claims["sub"] == "7"
    assert claims["exp"] > claims["iat"]
    assert claims["jti"]
    assert jwt.get_unverified_header(token)["alg"] == "HS256"


def test_tokens_for_same_user_are_unique():
    assert create_access_token(1) != create_access_token(1)


def test_expired_token_is_rejected():
    token = create_access_token(1, expires_delta=timedelta(seconds=-1))
    assert decode_access_token(token) is None


def test_token_signed_with_other_secret_is_rejected():
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"sub": "1", "exp": exp}, "another-secret-that-is-32-bytes-long!!", algorithm="HS256")
    assert decode_access_token(token) is None


def test_token_without_expiry_is_rejected():
    token = jwt.encode({"sub": "1"}, settings.JWT_SECRET_KEY, algorithm="HS256")
    assert decode_access_token(token) is None


def test_token_with_non_numeric_subject_is_rejected():
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"sub": "alice", "exp": exp}, settings.JWT_SECRET_KEY, algorithm="HS256")
    assert decode_access_token(token) is None


def test_garbage_token_is_rejected():
    assert decode_access_token("not.a.jwt") is None
    assert decode_access_token("") is None


# ---------------------------------------------------------------------------
# Authorization header
# ---------------------------------------------------------------------------

def test_parse_authorization_header():
    assert parse_authorization_header("Token abc.def.ghi") == "abc.def.ghi"
    assert parse_authorization_header("Bearer abc.def.ghi") is None
    assert parse_authorization_header("Token") is None
    assert parse_authorization_header("Token   ") is None
    assert parse_authorization_header("") is None
    assert parse_authorization_header(None) is None
