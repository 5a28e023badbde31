"""Password hashing and JWT creation/verification for authentication.

Each function takes the Settings of the running app; without one it falls
back to the process-wide get_settings().
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from studyshare.core.config import Settings, get_settings
from studyshare.core.errors import Unauthorized

# Input validation bounds for registration and login.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128


def hash_password(
    plain_password: str, rounds: int | None = None, settings: Settings | None = None
) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    if rounds is None:
        rounds = (settings or get_settings()).BCRYPT_ROUNDS
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(
    user_id: int,
    expires_delta: timedelta | None = None,
    settings: Settings | None = None,
) -> str:
    """Create a signed JWT carrying the user id as sub, with iat and exp."""
    settings = settings or get_settings()
    now = datetime.now(UTC)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def verify_access_token(token: str, settings: Settings | None = None) -> int:
    """
    Validate a JWT and return the user id it was issued for.

    Raises Unauthorized on bad signature, expiry, or a payload without an integer sub.
    No revocation list is consulted: a token stays valid until it expires.
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as e:
        raise Unauthorized("Invalid token") from e
    try:
        return int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise Unauthorized("Invalid token") from e
