"""Registration, login and password changes on top of the Store."""

import logging

from studyshare.core.config import Settings
from studyshare.core.errors import Conflict, Unauthorized
from studyshare.core.security import hash_password, verify_password
from studyshare.repositories.base import Store, UserRecord
from studyshare.schemas.auth import RegisterRequest

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def register_user(
    store: Store, body: RegisterRequest, settings: Settings | None = None
) -> UserRecord:
    """Create a user with a bcrypt-hashed password. Raises Conflict on duplicate email or username."""
    if store.get_user_by_email(body.email) or store.get_user_by_username(body.username):
        raise Conflict("User already exists with this email or username")
    user = store.create_user(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password, settings=settings),
        role=body.role,
    )
    logger.info("Registered user id=%s username=%s role=%s", user.id, user.username, user.role.value)
    return user


def authenticate(store: Store, email: str, password: str) -> UserRecord:
    """Return the user for valid credentials; the same error covers unknown email and bad password."""
    user = store.get_user_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        raise Unauthorized(INVALID_CREDENTIALS)
    return user


def change_password(
    store: Store,
    user: UserRecord,
    current_password: str,
    new_password: str,
    settings: Settings | None = None,
) -> UserRecord:
    """Re-hash only when the new password differs from the stored one."""
    if not verify_password(current_password, user.password_hash):
        raise Unauthorized("Current password is incorrect")
    if verify_password(new_password, user.password_hash):
        return user
    updated = store.update_password_hash(
        user.id, hash_password(new_password, settings=settings)
    )
    if updated is None:
        raise Unauthorized("Invalid token")
    logger.info("Password changed for user id=%s", user.id)
    return updated
