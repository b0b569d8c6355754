"""User service - account CRUD, role lookups and session revocation."""

from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from app.core.security import hash_password
from app.db.enums import Role
from app.db.models import User
from app.utils.normalization import like_pattern, normalize_email, normalize_name


def get_user_by_id(db: Session, user_id: UUID) -> User | None:
    """Get user by ID."""
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get user by email (case-insensitive)."""
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_active_user_with_role(db: Session, user_id: UUID | None, role: Role) -> User | None:
    """Active user with the given role, or None."""
    if user_id is None:
        return None
    return db.query(User).filter(
        User.id == user_id,
        User.role == role.value,
        User.is_active.is_(True),
    ).first()


def first_active_employer(db: Session) -> User | None:
    return db.query(User).filter(
        User.role == Role.EMPLOYER.value,
        User.is_active.is_(True),
    ).order_by(User.created_at).first()


def create_user(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: Role,
    phone: str | None = None,
    employer_id: UUID | None = None,
    team: str | None = None,
    team_leader_id: UUID | None = None,
    specialty: str | None = None,
    license_number: str | None = None,
) -> User:
    """
    Create a user account.

    Password strength is validated by the request schema; this only hashes.

    Raises:
        ValueError: if the email is already registered
    """
    email = normalize_email(email)
    if get_user_by_email(db, email):
        raise ValueError("User with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=normalize_name(first_name),
        last_name=normalize_name(last_name),
        role=role.value,
        phone=phone,
        employer_id=employer_id,
        team=team,
        team_leader_id=team_leader_id,
        specialty=specialty,
        license_number=license_number,
        managed_teams=[],
    )
    db.add(user)
    db.flush()
    return user


def list_users_query(
    db: Session,
    role: Role | None = None,
    search: str | None = None,
    is_active: bool | None = None,
) -> Query:
    """Filtered user query, newest first."""
    query = db.query(User)
    if role:
        query = query.filter(User.role == role.value)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.filter(or_(
            User.first_name.ilike(pattern, escape="\\"),
            User.last_name.ilike(pattern, escape="\\"),
            User.email.ilike(pattern, escape="\\"),
        ))
    return query.order_by(User.created_at.desc())


def scope_to_employer(query: Query, employer_id: UUID | None, self_id: UUID) -> Query:
    """Limit a user query to an employer's people plus the caller."""
    if employer_id is None:
        return query.filter(User.id == self_id)
    return query.filter(or_(User.employer_id == employer_id, User.id == self_id))


# Columns that can't be cleared; an explicit null leaves them unchanged
_REQUIRED_USER_FIELDS = frozenset({"email", "first_name", "last_name", "role", "is_active"})


def update_user(db: Session, user: User, data: dict) -> User:
    """
    Apply a partial profile update.

    Raises:
        ValueError: if the new email belongs to another account, or
            employer_id does not point at an active employer
    """
    data = {k: v for k, v in data.items() if v is not None or k not in _REQUIRED_USER_FIELDS}

    if "email" in data:
        new_email = normalize_email(data["email"])
        if new_email != user.email:
            existing = get_user_by_email(db, new_email)
            if existing and existing.id != user.id:
                raise ValueError("Email already in use")
        data["email"] = new_email

    if "role" in data:
        data["role"] = Role(data["role"]).value

    for field in ("first_name", "last_name"):
        if field in data:
            data[field] = normalize_name(data[field])
            if not data[field]:
                raise ValueError(f"{field} cannot be blank")

    if data.get("employer_id") is not None:
        if not get_active_user_with_role(db, data["employer_id"], Role.EMPLOYER):
            raise ValueError("Employer not found or inactive")

    was_active = user.is_active
    for field, value in data.items():
        setattr(user, field, value)

    if was_active and user.is_active is False:
        user.token_version += 1

    db.commit()
    db.refresh(user)
    return user


def disable_user(db: Session, user: User) -> User:
    """
    Disable user account.

    Also revokes all sessions by bumping token_version.
    """
    user.is_active = False
    user.token_version += 1
    db.commit()
    db.refresh(user)
    return user


def enable_user(db: Session, user: User) -> User:
    """Re-enable a disabled user account."""
    user.is_active = True
    db.commit()
    db.refresh(user)
    return user


def set_password(db: Session, user: User, password: str) -> None:
    """Replace the password hash and revoke existing sessions."""
    user.password_hash = hash_password(password)
    user.token_version += 1


def get_active_users_by_role(db: Session, role: Role) -> list[User]:
    return db.query(User).filter(
        User.role == role.value,
        User.is_active.is_(True),
    ).order_by(User.first_name, User.last_name).all()


def get_available_clinicians(db: Session) -> list[User]:
    return db.query(User).filter(
        User.role == Role.CLINICIAN.value,
        User.is_active.is_(True),
        User.is_available.is_(True),
    ).order_by(User.first_name, User.last_name).all()


def assign_employer(db: Session, user: User, employer_id: UUID) -> User:
    """
    Link a worker to an employer.

    Raises:
        ValueError: if the user is not a worker or the employer is not an active employer
    """
    if user.role != Role.WORKER.value:
        raise ValueError("Only workers can be assigned to an employer")
    employer = get_active_user_with_role(db, employer_id, Role.EMPLOYER)
    if not employer:
        raise ValueError("Employer not found or inactive")
    user.employer_id = employer.id
    db.commit()
    db.refresh(user)
    return user


def admin_update_user(
    db: Session,
    user: User,
    actor_id: UUID,
    role: Role | None = None,
    is_active: bool | None = None,
    password: str | None = None,
) -> User:
    """
    Admin override of role, activation and password.

    Raises:
        ValueError: if an admin tries to deactivate themselves
    """
    if is_active is False and user.id == actor_id:
        raise ValueError("You cannot deactivate your own account")

    if role is not None:
        user.role = role.value
    if is_active is not None and is_active != user.is_active:
        user.is_active = is_active
        if not is_active:
            user.token_version += 1
    if password:
        set_password(db, user, password)

    db.commit()
    db.refresh(user)
    return user
