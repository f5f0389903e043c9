from datetime import timedelta

import pytest

from ledgerbook.auth import AuthenticationError, create_token, decode_token
from ledgerbook.config import AppSettings

SETTINGS = AppSettings(jwt_secret="ledgerbook-test-signing-key-0123456789")


def test_token_round_trip_carries_user_id() -> None:
    assert decode_token(create_token("alice", SETTINGS), SETTINGS) == "alice"


def test_expired_token_fails() -> None:
    token = create_token("alice", SETTINGS, expires_in=timedelta(seconds=-30))
    with pytest.raises(AuthenticationError):
        decode_token(token, SETTINGS)


def test_tokens_rejected_without_secret() -> None:
    token = create_token("alice", SETTINGS)
    with pytest.raises(AuthenticationError):
        decode_token(token, AppSettings(jwt_secret=None))


def test_garbage_token_fails() -> None:
    with pytest.raises(AuthenticationError):
        decode_token("not-a-token", SETTINGS)
