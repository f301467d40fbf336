"""Tests for session token creation and validation."""

from datetime import timedelta

import pytest
from jose import JWTError, jwt

from viberank.config import get_settings
from viberank.security.tokens import ALGORITHM, create_session_token, decode_token


class TestCreateSessionToken:
    """Session token encoding and claims."""

    def test_contains_expected_claims(self):
        token = create_session_token(
            "alice", name="Alice", avatar="https://avatars.example/alice.png"
        )

        payload = decode_token(token)
        assert payload["sub"] == "alice"
        assert payload["name"] == "Alice"
        assert payload["avatar"] == "https://avatars.example/alice.png"
        assert payload["type"] == "session"

    def test_custom_expiry(self):
        token = create_session_token("alice", expires_delta=timedelta(minutes=5))

        payload = decode_token(token)
        assert payload["exp"] - payload["iat"] == 300

    def test_default_expiry_matches_settings(self):
        payload = decode_token(create_session_token("alice"))

        expected = get_settings().session_token_expire_minutes * 60
        assert payload["exp"] - payload["iat"] == expected


class TestDecodeToken:
    def test_expired_token_rejected(self):
        token = create_session_token("alice", expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            decode_token(token)

    def test_wrong_key_rejected(self):
        token = jwt.encode({"sub": "alice", "type": "session"}, "other-key", algorithm=ALGORITHM)

        with pytest.raises(JWTError):
            decode_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(JWTError):
            decode_token("not.a.jwt")
