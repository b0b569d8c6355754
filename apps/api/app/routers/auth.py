"""Authentication router - registration, login, logout and password management."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import (
    COOKIE_NAME,
    get_current_user,
    get_db,
    get_optional_user,
    require_csrf_header,
)
from app.core.rate_limit import AUTH_LIMIT, limiter
from app.core.security import verify_password
from app.db.models import User
from app.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    VerifyPasswordRequest,
    VerifyPasswordResponse,
)
from app.schemas.user import UserRead
from app.services import auth_service

router = APIRouter()


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )


def _auth_response(response: Response, user: User) -> AuthResponse:
    token = auth_service.issue_token(user)
    _set_session_cookie(response, token)
    return AuthResponse(token=token, user=UserRead.model_validate(user))


# =============================================================================
# Registration & Login
# =============================================================================

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    requester: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Create an account and start a session.

    Admin accounts can only be created by an authenticated admin.
    """
    try:
        user = auth_service.register(
            db,
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
            role=body.role,
            phone=body.phone,
            employer_id=body.employer_id,
            requester=requester,
        )
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _auth_response(response, user)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(AUTH_LIMIT)
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: Session = Depends(get_db),
):
    """Verify credentials, set the session cookie and return the token."""
    try:
        user = auth_service.authenticate(db, body.email, body.password, request=request)
    except auth_service.AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return _auth_response(response, user)


# =============================================================================
# Session Endpoints
# =============================================================================

@router.get("/me", response_model=UserRead)
def get_me(user: User = Depends(get_current_user)):
    """Get current authenticated user."""
    return UserRead.model_validate(user)


@router.put(
    "/change-password",
    response_model=AuthResponse,
    dependencies=[Depends(require_csrf_header)],
)
def change_password(
    request: Request,
    response: Response,
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Change password.

    Bumps token_version, so every other session is revoked; this one gets a
    fresh cookie.
    """
    try:
        user = auth_service.change_password(
            db, user, body.current_password, body.new_password, request=request
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _auth_response(response, user)


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(
    request: Request,
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Clear session cookie and log logout event.

    Requires X-Requested-With header for CSRF protection.
    """
    auth_service.record_logout(db, user, request=request)
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"status": "logged_out"}


@router.post(
    "/verify-password",
    response_model=VerifyPasswordResponse,
    dependencies=[Depends(require_csrf_header)],
)
def verify_current_password(
    body: VerifyPasswordRequest,
    user: User = Depends(get_current_user),
):
    """Check the current user's password (re-confirmation before sensitive actions)."""
    return VerifyPasswordResponse(valid=verify_password(body.password, user.password_hash))
