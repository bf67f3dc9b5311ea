from datetime import datetime, timedelta, timezone

import pytest

from locallibrary.errors import InvalidToken, TokenExpired
from locallibrary.security import (
    burn_verification,
    decode_token,
    hash_password,
    issue_token,
    verify_password,
)

SECRET = "s3cret"


def test_hash_is_salted_and_verifiable():
    first = hash_password("hunter2")
    second = hash_password("hunter2")
    assert "hunter2" not in first
    assert first != second
    assert verify_password("hunter2", first)
    assert verify_password("hunter2", second)
    assert not verify_password("hunter3", first)


def test_burn_verification_always_fails():
    assert burn_verification("anything") is False


def test_issue_and_decode():
    token = issue_token({"sub": "42", "email": "a@x.com"}, SECRET)
    claims = decode_token(token, SECRET)
    assert claims["sub"] == "42"
    assert claims["email"] == "a@x.com"
    assert claims["exp"] - claims["iat"] == 7 * 24 * 3600


def test_expired_token():
    issued = datetime.now(timezone.utc) - timedelta(hours=2)
    token = issue_token(
        {"sub": "42"}, SECRET, expires_delta=timedelta(hours=1), now=issued
    )
    with pytest.raises(TokenExpired):
        decode_token(token, SECRET)


def test_wrong_secret():
    token = issue_token({"sub": "42"}, SECRET)
    with pytest.raises(InvalidToken) as exc_info:
        decode_token(token, "another-secret")
    assert not isinstance(exc_info.value, TokenExpired)


def test_tampered_token():
    token = issue_token({"sub": "42", "email": "a@x.com"}, SECRET)
    forged = issue_token({"sub": "43", "email": "a@x.com"}, "forger")
    header, _, signature = token.split(".")
    _, payload, _ = forged.split(".")
    with pytest.raises(InvalidToken):
        decode_token(".".join([header, payload, signature]), SECRET)


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_token(token):
    with pytest.raises(InvalidToken):
        decode_token(token, SECRET)
