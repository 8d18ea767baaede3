"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_bearer_token
from app.rate_limit import limiter
from app.schemas.auth import LoginRequest, LoginResponse
from app.services.users import get_user_service

router = APIRouter(prefix="/api/1.0", tags=["Authentication"])


@router.post("/auth", response_model=LoginResponse)
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """Authenticate with email and password and receive a bearer token."""
    result = get_user_service().authenticate(db, body.email, body.password)
    return LoginResponse(
        id=result.user.id,
        username=result.user.username,
        image=result.user.image,
        token=result.token,
    )


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db)) -> Response:
    """Revoke the presented bearer token, if any. Always succeeds."""
    get_user_service().logout(db, get_bearer_token(request))
    return Response(status_code=200)
