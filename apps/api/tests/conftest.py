"""
Test configuration and fixtures.

Provides:
- A fresh in-memory SQLite schema per test
- User, incident, case and check-in factories
- HTTPX AsyncClients authenticated as any user (cookie + CSRF header)
"""
import itertools
import os
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import AsyncGenerator, Callable, Generator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

# Must be set before the app (and its settings / limiter) is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["SENTRY_DSN"] = ""

from app.main import app
from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.core.deps import get_db, COOKIE_NAME, CSRF_HEADER, CSRF_HEADER_VALUE
from app.core.security import create_session_token, hash_password
from app.db.enums import CaseStatus, Role
from app.db.models import Case, CheckIn, Incident, User
from app.utils.dates import app_today, utcnow


TEST_PASSWORD = "Rehab!Passw0rd"
# bcrypt is slow on purpose; hash once for every factory user
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)
CSRF_HEADERS = {CSRF_HEADER: CSRF_HEADER_VALUE}

_counter = itertools.count(1)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates every table in the shared in-memory database and drops them afterwards.

    The request handlers get this same session through the get_db override,
    so data committed by a route is immediately visible to the test.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def password() -> str:
    """Plaintext password shared by every factory user."""
    return TEST_PASSWORD


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """Create and commit a user of the given role."""
    def _make(role: Role = Role.WORKER, **fields) -> User:
        n = next(_counter)
        values = {
            "email": f"{role.value}-{n}-{uuid.uuid4().hex[:6]}@rehabtest.com",
            "password_hash": TEST_PASSWORD_HASH,
            "first_name": role.value.replace("_", " ").title().replace(" ", ""),
            "last_name": f"Tester{n}",
            "role": role.value,
            "managed_teams": [],
        }
        values.update(fields)
        user = User(**values)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_incident(db: Session) -> Callable[..., Incident]:
    def _make(worker: User, reporter: User, employer: User | None = None, **fields) -> Incident:
        values = {
            "incident_number": f"INC-TEST-{uuid.uuid4().hex[:6].upper()}",
            "reported_by_id": reporter.id,
            "worker_id": worker.id,
            "employer_id": employer.id if employer else worker.employer_id,
            "incident_date": utcnow() - timedelta(days=1),
            "description": "Slipped on a wet floor in the warehouse",
            "incident_type": "medical_treatment",
            "severity": "moderate",
        }
        values.update(fields)
        incident = Incident(**values)
        db.add(incident)
        db.commit()
        db.refresh(incident)
        return incident
    return _make


@pytest.fixture
def make_case(db: Session, make_incident) -> Callable[..., Case]:
    """Create a case (and its incident) directly, bypassing auto-assignment."""
    def _make(
        worker: User,
        employer: User,
        case_manager: User,
        clinician: User | None = None,
        status: CaseStatus = CaseStatus.TRIAGED,
        **fields,
    ) -> Case:
        incident = make_incident(worker, case_manager, employer=employer)
        values = {
            "case_number": f"CASE-TEST-{uuid.uuid4().hex[:8].upper()}",
            "worker_id": worker.id,
            "employer_id": employer.id,
            "case_manager_id": case_manager.id,
            "clinician_id": clinician.id if clinician else None,
            "incident_id": incident.id,
            "status": status.value,
            "priority": "medium",
            "injury_details": {"body_part": "lower back", "severity": "moderate"},
        }
        values.update(fields)
        case = Case(**values)
        db.add(case)
        db.commit()
        db.refresh(case)
        return case
    return _make


@pytest.fixture
def make_check_in(db: Session) -> Callable[..., CheckIn]:
    def _make(case: Case, days_ago: int = 0, pain: int = 3, sleep: int | None = None, **fields) -> CheckIn:
        check_in = CheckIn(
            case_id=case.id,
            worker_id=case.worker_id,
            check_in_date=app_today() - timedelta(days=days_ago),
            pain_current=pain,
            functional_status={"sleep": sleep} if sleep is not None else None,
            **fields,
        )
        db.add(check_in)
        db.commit()
        db.refresh(check_in)
        return check_in
    return _make


@dataclass
class CareTeam:
    """Everyone attached to one open case."""
    employer: User
    worker: User
    case_manager: User
    clinician: User
    case: Case


@pytest.fixture
def care_team(make_user, make_case) -> CareTeam:
    employer = make_user(Role.EMPLOYER, first_name="Acme", last_name="Logistics")
    worker = make_user(Role.WORKER, employer_id=employer.id, first_name="Wendy", last_name="Worker")
    case_manager = make_user(Role.CASE_MANAGER, first_name="Casey", last_name="Manager")
    clinician = make_user(Role.CLINICIAN, specialty="Orthopedic physiotherapy", first_name="Clara", last_name="Clinician")
    case = make_case(worker, employer, case_manager, clinician)
    return CareTeam(employer, worker, case_manager, clinician, case)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def override_db(db: Session) -> Generator[Session, None, None]:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield db
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(override_db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c


@pytest.fixture(scope="function")
async def client_for(override_db: Session) -> AsyncGenerator[Callable[..., AsyncClient], None]:
    """
    Factory for AsyncClients authenticated as a given user.

    Carries the session cookie and, unless csrf=False, the CSRF header.
    """
    clients: list[AsyncClient] = []

    def _make(user: User, csrf: bool = True) -> AsyncClient:
        token = create_session_token(user.id, user.role, user.token_version)
        c = AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies={COOKIE_NAME: token},
            headers=CSRF_HEADERS if csrf else {},
        )
        clients.append(c)
        return c

    yield _make

    for c in clients:
        await c.aclose()
