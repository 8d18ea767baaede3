"""Password reset API endpoints."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import PasswordResetContext, require_password_reset_token
from app.i18n import get_locale, translate
from app.rate_limit import limiter
from app.schemas.user import MessageResponse, PasswordResetRequest
from app.services.users import get_user_service

router = APIRouter(prefix="/api/1.0/user/password", tags=["Password Reset"])


@router.post("", response_model=MessageResponse)
@limiter.limit("3/minute")
async def request_password_reset(
    request: Request, body: PasswordResetRequest, db: Session = Depends(get_db)
) -> MessageResponse:
    """Mail a password reset token to a registered address."""
    locale = get_locale(request)
    await get_user_service().request_password_reset(db, body.email, locale=locale)
    return MessageResponse(message=translate("password_reset_request_success", locale))


@router.put("")
@limiter.limit("5/minute")
def update_password(
    request: Request,
    context: PasswordResetContext = Depends(require_password_reset_token),
    db: Session = Depends(get_db),
) -> Response:
    """Set a new password with a valid reset token."""
    get_user_service().reset_password(db, context.user, context.password)
    return Response(status_code=200)
