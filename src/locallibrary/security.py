"""Password hashing and bearer token primitives.

Nothing in here knows about HTTP or the database; the signing secret is always
passed in by the caller.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Mapping

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError
from passlib.hash import argon2

from .errors import InvalidToken, TokenExpired

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "HS256"
DEFAULT_EXPIRES = timedelta(days=7)


def hash_password(password: str) -> str:
    """Salted argon2 hash of `password`, deliberately slow"""
    return argon2.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return argon2.verify(password, password_hash)


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return argon2.hash("not-a-real-password")


def burn_verification(password: str) -> bool:
    """Run a verification against a throwaway hash.

    Used when the account does not exist, so that an unknown email costs as
    much as a wrong password.
    """
    verify_password(password, _dummy_hash())
    return False


def issue_token(
    claims: Mapping[str, Any],
    secret: str,
    algorithm: str = DEFAULT_ALGORITHM,
    expires_delta: timedelta = DEFAULT_EXPIRES,
    now: datetime | None = None,
) -> str:
    """Sign `claims` into a JWT carrying `iat` and `exp`

    :param claims: claims to embed, `sub` must be a string when present
    :type claims: Mapping[str, Any]
    :param secret: signing key
    :type secret: str
    :param expires_delta: lifetime of the token, defaults to 7 days
    :type expires_delta: timedelta, optional
    :param now: issue time, defaults to the current UTC time
    :type now: datetime | None, optional
    :return: the encoded token
    :rtype: str
    """
    issued_at = now or datetime.now(timezone.utc)
    payload = dict(claims)
    payload.update(iat=issued_at, exp=issued_at + expires_delta)
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(
    token: str, secret: str, algorithm: str = DEFAULT_ALGORITHM
) -> dict[str, Any]:
    """Check signature and expiry of `token` and return its claims

    :raises TokenExpired: the signature is fine but `exp` has passed
    :raises InvalidToken: malformed token or bad signature
    """
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except ExpiredSignatureError as e:
        raise TokenExpired() from e
    except JWTError as e:
        logger.debug("rejected token: %s", e)
        raise InvalidToken() from e
