"""Register/login/me/logout routes and the auth dependencies (get_current_user, require_admin)."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from studyshare.api.deps import get_app_settings, get_store
from studyshare.core.config import Settings
from studyshare.core.errors import Forbidden, Unauthorized
from studyshare.core.security import create_access_token, verify_access_token
from studyshare.models.user import Role
from studyshare.repositories.base import Store, UserRecord
from studyshare.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    MessageResponse,
    PasswordChangeRequest,
    RegisterRequest,
    UserOut,
)
from studyshare.services.accounts import authenticate, change_password, register_user

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    store: Annotated[Store, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> UserRecord:
    """Dependency: require a valid Bearer JWT for an existing user. Raises Unauthorized otherwise."""
    if credentials is None or not credentials.credentials:
        raise Unauthorized("No token provided")
    user_id = verify_access_token(credentials.credentials, settings=settings)
    user = store.get_user(user_id)
    if user is None:
        raise Unauthorized("Invalid token")
    return user


def require_admin(
    current_user: Annotated[UserRecord, Depends(get_current_user)],
) -> UserRecord:
    """Dependency: require authenticated user with role 'admin'. Raises Forbidden for non-admin."""
    if current_user.role != Role.ADMIN:
        raise Forbidden("Admin access required")
    return current_user


def _auth_response(user: UserRecord, settings: Settings) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(user.id, settings=settings),
        user=UserOut.model_validate(user, from_attributes=True),
    )


@router.post("/register", response_model=AuthResponse)
def register(
    body: RegisterRequest,
    store: Annotated[Store, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AuthResponse:
    """Create an account and return a token for it straight away."""
    return _auth_response(register_user(store, body, settings=settings), settings)


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    store: Annotated[Store, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns a JWT valid for 7 days.
    Include the token in the Authorization header as: Bearer <token>
    """
    return _auth_response(authenticate(store, body.email, body.password), settings)


@router.get("/me", response_model=MeResponse)
def me(current_user: Annotated[UserRecord, Depends(get_current_user)]) -> MeResponse:
    return MeResponse(user=UserOut.model_validate(current_user, from_attributes=True))


@router.post("/logout", response_model=MessageResponse)
def logout() -> MessageResponse:
    """Tokens are stateless; the client discards its copy. Nothing changes server-side."""
    return MessageResponse(message="Logged out successfully")


@router.post("/password", response_model=MeResponse)
def update_password(
    body: PasswordChangeRequest,
    current_user: Annotated[UserRecord, Depends(get_current_user)],
    store: Annotated[Store, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> MeResponse:
    user = change_password(
        store, current_user, body.current_password, body.new_password, settings=settings
    )
    return MeResponse(user=UserOut.model_validate(user, from_attributes=True))
