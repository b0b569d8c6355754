"""SQLAlchemy ORM models for users, incidents, cases and rehabilitation tracking."""

import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON, Boolean, Date, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint, Uuid, func
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin
from app.utils.dates import utcnow
from app.db.enums import (
    DEFAULT_APPOINTMENT_STATUS, DEFAULT_DURATION_MINUTES,
    AppointmentLocation, CasePriority, CaseStatus, IncidentStatus,
    AssignmentStatus, NoteType, NotificationPriority, RehabPlanStatus,
    WorkReadinessStatus
)


# =============================================================================
# Users & Auth
# =============================================================================

class User(TimestampMixin, Base):
    """
    Application user. Every role lives in this table.

    Employers are users with role=employer; workers point at them through
    employer_id. Team leaders own workers through team_leader_id.
    """
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_role_active", "role", "is_active"),
        Index("idx_users_employer", "employer_id"),
        Index("idx_users_team_leader", "team_leader_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(30), nullable=False)

    # Contact
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    address: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    emergency_contact: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    medical_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Employer / team structure
    employer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    team: Mapped[str | None] = mapped_column(String(100), nullable=True)
    team_leader_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    default_team: Mapped[str | None] = mapped_column(String(100), nullable=True)
    managed_teams: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    package: Mapped[str] = mapped_column(String(30), default="package1", nullable=False)

    # Clinician profile
    specialty: Mapped[str | None] = mapped_column(String(100), nullable=True)
    license_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    availability_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_availability_update: Mapped[datetime | None] = mapped_column(nullable=True)

    # Account state
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)
    login_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    token_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Relationships
    employer: Mapped["User | None"] = relationship(
        remote_side="User.id", foreign_keys=[employer_id]
    )
    team_leader: Mapped["User | None"] = relationship(
        remote_side="User.id", foreign_keys=[team_leader_id]
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class AuthLog(Base):
    """Authentication events (logins, failures, logouts, password changes)."""
    __tablename__ = "auth_logs"
    __table_args__ = (
        Index("idx_auth_logs_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    user: Mapped["User | None"] = relationship()


# =============================================================================
# Incidents & Cases
# =============================================================================

class Incident(TimestampMixin, Base):
    """A reported workplace incident. At most one case is opened per incident."""
    __tablename__ = "incidents"
    __table_args__ = (
        Index("idx_incidents_worker", "worker_id"),
        Index("idx_incidents_employer", "employer_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    incident_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    reported_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    worker_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    employer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )
    incident_date: Mapped[datetime] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    incident_type: Mapped[str] = mapped_column(String(30), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=IncidentStatus.REPORTED.value, nullable=False
    )

    reported_by: Mapped["User"] = relationship(foreign_keys=[reported_by_id])
    worker: Mapped["User"] = relationship(foreign_keys=[worker_id])
    employer: Mapped["User | None"] = relationship(foreign_keys=[employer_id])


class Case(TimestampMixin, Base):
    """
    Worker injury case tracked through the rehab pipeline.

    incident_id is unique: a second case for the same incident is rejected
    by the database even if two requests race past the service check.
    """
    __tablename__ = "cases"
    __table_args__ = (
        UniqueConstraint("incident_id", name="uq_case_incident"),
        Index("idx_cases_worker", "worker_id"),
        Index("idx_cases_employer", "employer_id"),
        Index("idx_cases_case_manager", "case_manager_id"),
        Index("idx_cases_clinician_status", "clinician_id", "status"),
        Index("idx_cases_created", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    worker_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    employer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    case_manager_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    clinician_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )
    incident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("incidents.id"), nullable=False
    )

    status: Mapped[str] = mapped_column(String(20), default=CaseStatus.NEW.value, nullable=False)
    priority: Mapped[str] = mapped_column(
        String(20), default=CasePriority.MEDIUM.value, nullable=False
    )

    # {body_part, injury_type, severity, description, date_of_injury, mechanism_of_injury}
    injury_details: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    # {lifting: {max_weight, frequency}, standing: {max_duration, breaks}, other: [...]}
    work_restrictions: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    expected_return_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_return_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Relationships
    worker: Mapped["User"] = relationship(foreign_keys=[worker_id])
    employer: Mapped["User"] = relationship(foreign_keys=[employer_id])
    case_manager: Mapped["User"] = relationship(foreign_keys=[case_manager_id])
    clinician: Mapped["User | None"] = relationship(foreign_keys=[clinician_id])
    incident: Mapped["Incident"] = relationship()
    notes: Mapped[list["CaseNote"]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CaseNote.created_at",
    )


class CaseNote(Base):
    """Timeline note on a case (assignments, status changes, clinical notes)."""
    __tablename__ = "case_notes"
    __table_args__ = (
        Index("idx_case_notes_case", "case_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    note_type: Mapped[str] = mapped_column(
        String(30), default=NoteType.GENERAL.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    case: Mapped["Case"] = relationship(back_populates="notes")
    author: Mapped["User | None"] = relationship()


# =============================================================================
# Appointments
# =============================================================================

class Appointment(TimestampMixin, Base):
    """Clinician appointment with a worker for a case."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_clinician_time", "clinician_id", "scheduled_at"),
        Index("idx_appointments_worker_time", "worker_id", "scheduled_at"),
        Index("idx_appointments_case", "case_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    worker_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    clinician_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    appointment_type: Mapped[str] = mapped_column(String(30), nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(nullable=False)
    duration_minutes: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_DURATION_MINUTES, nullable=False
    )
    location: Mapped[str] = mapped_column(
        String(20), default=AppointmentLocation.CLINIC.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_APPOINTMENT_STATUS.value, nullable=False
    )
    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    cancelled_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    case: Mapped["Case"] = relationship()
    worker: Mapped["User"] = relationship(foreign_keys=[worker_id])
    clinician: Mapped["User"] = relationship(foreign_keys=[clinician_id])


# =============================================================================
# Check-ins & Rehab
# =============================================================================

class CheckIn(TimestampMixin, Base):
    """
    Daily worker self-report.

    check_in_date is the calendar day in APP_TIMEZONE; the unique constraint
    enforces one check-in per worker per case per day.
    """
    __tablename__ = "check_ins"
    __table_args__ = (
        UniqueConstraint("case_id", "worker_id", "check_in_date", name="uq_check_in_daily"),
        Index("idx_check_ins_worker_date", "worker_id", "check_in_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    worker_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False)

    pain_current: Mapped[int] = mapped_column(Integer, nullable=False)
    pain_worst: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pain_average: Mapped[int | None] = mapped_column(Integer, nullable=True)

    functional_status: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    medication_compliance: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    exercise_compliance: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    work_status: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    symptoms: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    concerns: Mapped[str | None] = mapped_column(Text, nullable=True)
    questions: Mapped[str | None] = mapped_column(Text, nullable=True)
    goals: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Clinician review
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    case: Mapped["Case"] = relationship()
    worker: Mapped["User"] = relationship(foreign_keys=[worker_id])

    @property
    def sleep_quality(self) -> int | None:
        return (self.functional_status or {}).get("sleep")


class RehabPlan(TimestampMixin, Base):
    """
    Rehabilitation plan for a case.

    Goals, exercises, activities and progress entries are JSON documents;
    services replace the whole list on change so SQLAlchemy sees the update.
    """
    __tablename__ = "rehab_plans"
    __table_args__ = (
        Index("idx_rehab_plans_case_status", "case_id", "status"),
        Index("idx_rehab_plans_clinician", "clinician_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    clinician_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    plan_name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=RehabPlanStatus.ACTIVE.value, nullable=False
    )

    goals: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    exercises: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    activities: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    progress_tracking: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    modifications: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    case: Mapped["Case"] = relationship()
    clinician: Mapped["User"] = relationship()


class ActivityLog(Base):
    """Worker activity feed entry (check-ins, rehab progress, work readiness)."""
    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("idx_activity_logs_case", "case_id", "created_at"),
        Index("idx_activity_logs_clinician", "clinician_id", "created_at"),
        Index("idx_activity_logs_worker", "worker_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    worker_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    case_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=True
    )
    clinician_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    rehab_plan_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("rehab_plans.id", ondelete="SET NULL"), nullable=True
    )
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(String(20), default="low", nullable=False)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Care team review
    is_reviewed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    worker: Mapped["User"] = relationship(foreign_keys=[worker_id])
    case: Mapped["Case"] = relationship()


# =============================================================================
# Work Readiness
# =============================================================================

class WorkReadiness(Base):
    """
    A worker's pre-shift readiness self-assessment.

    One per worker per app-timezone day (submitted_date). Each row carries
    the 7-day submission cycle state as of that submission.
    """
    __tablename__ = "work_readiness"
    __table_args__ = (
        UniqueConstraint("worker_id", "submitted_date", name="uq_work_readiness_worker_day"),
        Index("idx_work_readiness_leader", "team_leader_id", "submitted_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    worker_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    team_leader_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    team: Mapped[str | None] = mapped_column(String(100), nullable=True)

    fatigue_level: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-5
    pain_discomfort: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pain_areas: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    readiness_level: Mapped[str] = mapped_column(String(20), nullable=False)
    mood: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), default=WorkReadinessStatus.SUBMITTED.value, nullable=False
    )
    reviewed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    follow_up_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    follow_up_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Submission cycle
    cycle_start: Mapped[date] = mapped_column(Date, nullable=False)
    cycle_day: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    streak_days: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    cycle_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    submitted_date: Mapped[date] = mapped_column(Date, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    worker: Mapped["User"] = relationship(foreign_keys=[worker_id])


class WorkReadinessAssignment(TimestampMixin, Base):
    """A team leader's request that a worker submit readiness on a given day."""
    __tablename__ = "work_readiness_assignments"
    __table_args__ = (
        Index("idx_wr_assignments_worker", "worker_id", "assigned_date"),
        Index("idx_wr_assignments_leader", "team_leader_id", "assigned_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    team_leader_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    worker_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    team: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assigned_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_time: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=AssignmentStatus.PENDING.value, nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    work_readiness_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("work_readiness.id", ondelete="SET NULL"), nullable=True
    )

    worker: Mapped["User"] = relationship(foreign_keys=[worker_id])
    team_leader: Mapped["User"] = relationship(foreign_keys=[team_leader_id])


# =============================================================================
# Notifications
# =============================================================================

class Notification(Base):
    """
    In-app notification for a single recipient.

    dedupe_key suppresses repeats for the same recipient inside the
    NOTIFICATION_DEDUPE_MINUTES window.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notif_recipient_unread", "recipient_id", "is_read", "created_at"),
        Index("idx_notif_dedupe", "dedupe_key", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(String(1000), nullable=False)
    priority: Mapped[str] = mapped_column(
        String(20), default=NotificationPriority.MEDIUM.value, nullable=False
    )
    action_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    dedupe_key: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    recipient: Mapped["User"] = relationship(foreign_keys=[recipient_id])
    sender: Mapped["User | None"] = relationship(foreign_keys=[sender_id])
