"""User API endpoints."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import (
    CurrentUser,
    Pagination,
    get_authenticated_user,
    get_pagination,
    parse_user_id,
    require_owner,
)
from app.exceptions import NotFound
from app.i18n import get_locale, translate
from app.rate_limit import limiter
from app.schemas.user import MessageResponse, UserCreateRequest, UserPageResponse, UserResponse, UserUpdateRequest
from app.services.users import get_user_service

router = APIRouter(prefix="/api/1.0/users", tags=["Users"])


@router.post("", response_model=MessageResponse)
@limiter.limit("10/minute")
async def register(request: Request, body: UserCreateRequest, db: Session = Depends(get_db)) -> MessageResponse:
    """Register an inactive account and mail its activation token."""
    locale = get_locale(request)
    service = get_user_service()
    service.validate_registration(db, body.username, body.email, body.password)
    await service.register(db, body.username, body.email, body.password, locale=locale)  # type: ignore[arg-type]
    return MessageResponse(message=translate("user_create_success", locale))


@router.post("/token/{token}", response_model=MessageResponse)
def activate(request: Request, token: str, db: Session = Depends(get_db)) -> MessageResponse:
    """Activate the account holding this activation token."""
    get_user_service().activate(db, token)
    return MessageResponse(message=translate("account_activation_success", get_locale(request)))


@router.get("", response_model=UserPageResponse, response_model_exclude_none=True)
def list_users(
    pagination: Pagination = Depends(get_pagination),
    user: CurrentUser | None = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
) -> UserPageResponse:
    """List active users, leaving out the caller."""
    result = get_user_service().get_users(
        db, pagination.page, pagination.size, exclude_user_id=user.user_id if user else None
    )
    return UserPageResponse(
        content=[UserResponse.model_validate(u) for u in result.content],
        page=result.page,
        size=result.size,
        total_pages=result.total_pages,
    )


@router.get("/{user_id}", response_model=UserResponse, response_model_exclude_none=True)
def get_user(user_id: str, db: Session = Depends(get_db)) -> UserResponse:
    """Get an active user's public fields."""
    numeric_id = parse_user_id(user_id)
    if numeric_id is None:
        raise NotFound("user_not_found")
    return UserResponse.model_validate(get_user_service().get_user(db, numeric_id))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    body: UserUpdateRequest | None = None,
    user: CurrentUser = Depends(require_owner("unauthorized_user_update")),
    db: Session = Depends(get_db),
) -> UserResponse:
    """Update the caller's username and optionally their profile image."""
    body = body or UserUpdateRequest()
    service = get_user_service()
    image = service.validate_update(body.username, body.image)
    updated = service.update_user(db, user.user_id, body.username, image)  # type: ignore[arg-type]
    return UserResponse.model_validate(updated)


@router.delete("/{user_id}")
def delete_user(
    user: CurrentUser = Depends(require_owner("unauthorized_user_delete")),
    db: Session = Depends(get_db),
) -> Response:
    """Delete the caller's account."""
    get_user_service().delete_user(db, user.user_id)
    return Response(status_code=200)
