"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.security import decode_session_token
from app.db.session import SessionLocal


# Cookie and header names
COOKIE_NAME = "rehab_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"
STREAM_TOKEN_PARAM = "token"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("authorization", "")
    scheme, _, value = auth_header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def _extract_token(request: Request, allow_query: bool = False) -> str | None:
    """Session token from cookie, then Authorization header, then ?token= (streams only)."""
    token = request.cookies.get(COOKIE_NAME) or _bearer_token(request)
    if not token and allow_query:
        token = request.query_params.get(STREAM_TOKEN_PARAM)
    return token


def _resolve_user(token: str | None, db: Session):
    """
    Validate a session token and load its user.

    Validates:
    - Token exists
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    # Import here to avoid circular imports
    from app.db.models import User

    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.query(User).filter(User.id == _parse_uuid(payload.get("sub"))).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is deactivated")

    if user.token_version != payload.get("token_version"):
        raise HTTPException(status_code=401, detail="Session revoked")

    return user


def _parse_uuid(value) -> UUID:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session")


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
):
    """Get authenticated user from session cookie or bearer token."""
    return _resolve_user(_extract_token(request), db)


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
):
    """Authenticated user if a valid session is present, else None (public routes)."""
    token = _extract_token(request)
    if not token:
        return None
    try:
        return _resolve_user(token, db)
    except HTTPException:
        return None


def get_stream_user(
    request: Request,
    db: Session = Depends(get_db),
):
    """Authenticated user for SSE, where EventSource cannot set headers."""
    return _resolve_user(_extract_token(request, allow_query=True), db)


def _session_for(user):
    from app.db.enums import Role
    from app.schemas.auth import UserSession

    # Validate role is a known enum value - return 403 not 500
    if not Role.has_value(user.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{user.role}'. Contact administrator.",
        )

    return UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        display_name=user.display_name,
        employer_id=user.employer_id,
        team_leader_id=user.team_leader_id,
    )


def get_current_session(
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Get session context: user_id, role, employer.

    This is the PRIMARY auth dependency for most endpoints.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: Unknown role
    """
    user = get_current_user(request, db)
    return _session_for(user)


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-based authorization.

    Uses enum values (not strings) to prevent drift.

    Usage:
        @router.post("/", dependencies=[Depends(require_roles([Role.ADMIN, Role.CASE_MANAGER]))])
    """
    def dependency(request: Request, db: Session = Depends(get_db)):
        session = get_current_session(request, db)
        if session.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action",
            )
        return session
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PUT, PATCH, DELETE).
    Bearer-authenticated requests carry no ambient credentials and skip the check.

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if _bearer_token(request) and not request.cookies.get(COOKIE_NAME):
        return
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )
