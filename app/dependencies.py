"""Authentication and authorization dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import Forbidden
from app.models.user import User
from app.schemas.user import PasswordUpdateRequest
from app.services.tokens import get_token_service
from app.services.users import get_user_service

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 10
MAX_ID = 2**63 - 1


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: int


def get_bearer_token(request: Request) -> str | None:
    """Extract the token from an ``Authorization: Bearer`` header."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def authenticate_request(request: Request, db: Session = Depends(get_db)) -> CurrentUser | None:
    """Resolve the bearer token of every request. Never rejects.

    Installed as an application-wide dependency, so a presented token is
    refreshed even on public endpoints. Missing, unknown, or expired tokens
    leave the request anonymous; guards decide what that means.
    """
    token = get_bearer_token(request)
    if not token:
        return None

    user_id = get_token_service().resolve(db, token)
    if user_id is None:
        return None

    return CurrentUser(user_id=user_id)


def get_authenticated_user(
    user: CurrentUser | None = Depends(authenticate_request),
) -> CurrentUser | None:
    return user


def parse_user_id(value: str) -> int | None:
    """Parse a path id. Non-numeric or out-of-range ids give None."""
    try:
        user_id = int(value)
    except ValueError:
        return None
    if not 0 < user_id <= MAX_ID:
        return None
    return user_id


def is_owner(user: CurrentUser | None, path_user_id: str) -> bool:
    """Compare a path id with the authenticated id as integers."""
    if user is None:
        return False
    return parse_user_id(path_user_id) == user.user_id


def require_owner(message_key: str):
    """Build a guard that only lets a user act on their own account."""

    def guard(user_id: str, user: CurrentUser | None = Depends(get_authenticated_user)) -> CurrentUser:
        if not is_owner(user, user_id):
            raise Forbidden(message_key)
        return user  # type: ignore[return-value]

    return guard


@dataclass
class PasswordResetContext:
    user: User
    password: str | None


def require_password_reset_token(body: PasswordUpdateRequest, db: Session = Depends(get_db)) -> PasswordResetContext:
    """Resolve the account of a password reset token, or reject with 403."""
    user = get_user_service().find_by_password_reset_token(db, body.password_reset_token)
    if not user:
        raise Forbidden("unauthorized_password_reset")
    return PasswordResetContext(user=user, password=body.password)


@dataclass
class Pagination:
    page: int
    size: int


def parse_pagination(page: str | None, size: str | None) -> Pagination:
    """Clamp page to >= 0 and size to 1..10, defaulting on bad input."""
    try:
        page_number = int(page) if page is not None else 0
    except ValueError:
        page_number = 0
    try:
        page_size = int(size) if size is not None else DEFAULT_PAGE_SIZE
    except ValueError:
        page_size = DEFAULT_PAGE_SIZE

    if page_number < 0:
        page_number = 0
    if page_size <= 0 or page_size > MAX_PAGE_SIZE:
        page_size = DEFAULT_PAGE_SIZE
    return Pagination(page=page_number, size=page_size)


def get_pagination(page: str | None = None, size: str | None = None) -> Pagination:
    return parse_pagination(page, size)
