"""
Security helpers and configuration validation.
"""
from datetime import timedelta

import pytest
from pydantic import ValidationError

from schoolshare.config import Settings
from schoolshare.utils.config_validator import _validate_secrets, _validate_share_config
from schoolshare.utils.security import (
    create_access_token,
    decode_access_token,
    generate_share_token,
    hash_password,
    is_well_formed_share_token,
    verify_password,
)


def test_share_tokens_are_unique_and_url_safe():
    tokens = {generate_share_token() for _ in range(50)}
    assert len(tokens) == 50
    assert all(is_well_formed_share_token(t) for t in tokens)


def test_malformed_share_tokens():
    assert not is_well_formed_share_token("")
    assert not is_well_formed_share_token("short")
    assert not is_well_formed_share_token("has spaces in it, not a token")
    assert not is_well_formed_share_token("a" * 129)


def test_password_hashing():
    hashed = hash_password("abc123")
    assert hashed != "abc123"
    assert verify_password("abc123", hashed)
    assert not verify_password("abc124", hashed)
    assert not verify_password("abc123", "not-a-bcrypt-hash")


def test_access_token_round_trip():
    payload = decode_access_token(create_access_token(42))
    assert payload is not None
    assert payload.sub == 42


def test_expired_access_token():
    assert decode_access_token(create_access_token(42, expires_delta=timedelta(minutes=-1))) is None
    assert decode_access_token("garbage") is None


def test_default_secrets_rejected():
    errors = _validate_secrets(Settings(secret_key="change-me-in-production", jwt_secret_key="short"))
    assert len(errors) == 2


def test_production_share_config():
    settings = Settings(public_base_url="http://photos.example.com", admin_bootstrap_email="a@example.com")
    errors = _validate_share_config(settings)
    assert len(errors) == 2


def test_share_token_bytes_fit_token_column():
    with pytest.raises(ValidationError):
        Settings(share_token_bytes=97)
    token = generate_share_token(Settings(share_token_bytes=96).share_token_bytes)
    assert len(token) == 128
    assert is_well_formed_share_token(token)
