"""Auth service - credential checks, registration and auth event logging."""

import logging
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from app.core.security import create_session_token, verify_password
from app.db.enums import AuthAction, Role
from app.db.models import AuthLog, User
from app.services import user_service
from app.utils.dates import utcnow
from app.utils.normalization import normalize_email

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
ACCOUNT_DEACTIVATED = "Account is deactivated"


class AuthenticationError(Exception):
    """Login rejected. The message is safe to show to the client."""


def _client_info(request: Request | None) -> tuple[str | None, str | None]:
    if request is None:
        return None, None
    ip_address = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    return ip_address, user_agent[:500] if user_agent else None


def log_auth_event(
    db: Session,
    action: AuthAction,
    email: str,
    success: bool,
    user_id: UUID | None = None,
    request: Request | None = None,
) -> AuthLog:
    """Record an authentication event. Flushes only."""
    ip_address, user_agent = _client_info(request)
    entry = AuthLog(
        user_id=user_id,
        email=email,
        action=action.value,
        success=success,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    db.flush()
    return entry


def issue_token(user: User) -> str:
    return create_session_token(user.id, user.role, user.token_version)


def authenticate(
    db: Session,
    email: str,
    password: str,
    request: Request | None = None,
) -> User:
    """
    Verify credentials and record the attempt.

    Commits the auth log (and login bookkeeping) whether or not the
    attempt succeeds.

    Raises:
        AuthenticationError: unknown email, wrong password or inactive account
    """
    email = normalize_email(email)
    user = user_service.get_user_by_email(db, email)

    if not user or not verify_password(password, user.password_hash):
        if user:
            user.login_attempts += 1
        log_auth_event(
            db, AuthAction.FAILED_LOGIN, email, False,
            user_id=user.id if user else None, request=request,
        )
        db.commit()
        logger.info("Failed login attempt", extra={"user_id": str(user.id) if user else None})
        raise AuthenticationError(INVALID_CREDENTIALS)

    if not user.is_active:
        log_auth_event(db, AuthAction.FAILED_LOGIN, email, False, user_id=user.id, request=request)
        db.commit()
        raise AuthenticationError(ACCOUNT_DEACTIVATED)

    user.last_login_at = utcnow()
    user.login_attempts = 0
    log_auth_event(db, AuthAction.LOGIN, email, True, user_id=user.id, request=request)
    db.commit()
    db.refresh(user)
    return user


def resolve_registration_employer(
    db: Session,
    role: Role,
    employer_id: UUID | None,
    requester: User | None,
) -> UUID | None:
    """
    Employer for a newly registered account.

    Workers without one inherit the requester's employer, else the first
    active employer. Other roles keep what they were given.
    """
    if employer_id is not None or role != Role.WORKER:
        return employer_id
    if requester is not None:
        if requester.role == Role.EMPLOYER.value:
            return requester.id
        if requester.employer_id:
            return requester.employer_id
    fallback = user_service.first_active_employer(db)
    return fallback.id if fallback else None


def register(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: Role,
    phone: str | None = None,
    employer_id: UUID | None = None,
    requester: User | None = None,
) -> User:
    """
    Register a new account.

    Raises:
        PermissionError: creating an admin without an admin requester
        ValueError: duplicate email
    """
    if role == Role.ADMIN and (requester is None or requester.role != Role.ADMIN.value):
        raise PermissionError("Only administrators can create admin accounts")

    user = user_service.create_user(
        db,
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        role=role,
        phone=phone,
        employer_id=resolve_registration_employer(db, role, employer_id, requester),
    )
    user.last_login_at = utcnow()
    log_auth_event(db, AuthAction.LOGIN, user.email, True, user_id=user.id)
    db.commit()
    db.refresh(user)
    return user


def change_password(
    db: Session,
    user: User,
    current_password: str,
    new_password: str,
    request: Request | None = None,
) -> User:
    """
    Change password and revoke other sessions.

    Raises:
        ValueError: current password is wrong
    """
    if not verify_password(current_password, user.password_hash):
        raise ValueError("Current password is incorrect")

    user_service.set_password(db, user, new_password)
    log_auth_event(db, AuthAction.PASSWORD_CHANGE, user.email, True, user_id=user.id, request=request)
    db.commit()
    db.refresh(user)
    return user


def record_logout(db: Session, user: User, request: Request | None = None) -> None:
    log_auth_event(db, AuthAction.LOGOUT, user.email, True, user_id=user.id, request=request)
    db.commit()
