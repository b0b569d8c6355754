"""Rehab plan service - plan lifecycle, modifications and progress tracking."""

import logging
from uuid import UUID

from sqlalchemy import false
from sqlalchemy.orm import Query, Session, joinedload

from app.db.enums import (
    BLOCKING_APPOINTMENT_STATUSES, OPEN_PLAN_STATUSES, ACTIVE_CLINICAL_STATUSES,
    CaseStatus, GoalStatus, ItemStatus, ProgressType, RehabPlanStatus, Role,
)
from app.db.models import Appointment, Case, RehabPlan, User
from app.schemas.auth import UserSession
from app.schemas.rehab_plan import ProgressEntry, RehabPlanCreate, RehabPlanUpdate
from app.services import activity_service
from app.utils.dates import app_today, utcnow

logger = logging.getLogger(__name__)

_OPEN_VALUES = [s.value for s in OPEN_PLAN_STATUSES]
# Case statuses that move to in_rehab when a plan starts
_PRE_REHAB_STATUSES = frozenset({CaseStatus.TRIAGED.value, CaseStatus.ASSESSED.value})
_PROGRESS_VALUE_FIELD = {
    ProgressType.PAIN_LEVEL: "level",
    ProgressType.FUNCTIONAL_IMPROVEMENT: "improvement",
    ProgressType.WORK_READINESS: "score",
}


def empty_progress_tracking() -> dict:
    return {t.value: [] for t in ProgressType}


def get_plan(db: Session, plan_id: UUID) -> RehabPlan | None:
    return db.query(RehabPlan).options(joinedload(RehabPlan.case)).filter(RehabPlan.id == plan_id).first()


def get_open_plan(db: Session, case_id: UUID) -> RehabPlan | None:
    return db.query(RehabPlan).filter(
        RehabPlan.case_id == case_id,
        RehabPlan.status.in_(_OPEN_VALUES),
    ).first()


# =============================================================================
# Access
# =============================================================================


def can_view_plan(plan: RehabPlan, session: UserSession) -> bool:
    if session.role == Role.ADMIN:
        return True
    if session.role == Role.WORKER:
        return plan.case.worker_id == session.user_id
    if session.role == Role.CLINICIAN:
        return plan.clinician_id == session.user_id
    if session.role == Role.CASE_MANAGER:
        return plan.case.case_manager_id == session.user_id
    return False


def can_edit_plan(plan: RehabPlan, session: UserSession) -> bool:
    if session.role in (Role.ADMIN, Role.CASE_MANAGER):
        return True
    return session.role == Role.CLINICIAN and plan.clinician_id == session.user_id


def can_record_progress(plan: RehabPlan, session: UserSession) -> bool:
    if session.role == Role.ADMIN:
        return True
    if session.role == Role.CLINICIAN:
        return plan.clinician_id == session.user_id
    return session.role == Role.WORKER and plan.case.worker_id == session.user_id


def scope_plan_query(query: Query, session: UserSession) -> Query:
    if session.role == Role.ADMIN:
        return query
    if session.role == Role.CLINICIAN:
        return query.filter(RehabPlan.clinician_id == session.user_id)
    if session.role == Role.WORKER:
        return query.join(Case, RehabPlan.case_id == Case.id).filter(Case.worker_id == session.user_id)
    if session.role == Role.CASE_MANAGER:
        return query.join(Case, RehabPlan.case_id == Case.id).filter(
            Case.case_manager_id == session.user_id
        )
    return query.filter(false())


def list_plans_query(
    db: Session,
    session: UserSession,
    case_id: UUID | None = None,
    status: RehabPlanStatus | None = None,
) -> Query:
    query = scope_plan_query(db.query(RehabPlan).options(joinedload(RehabPlan.case)), session)
    if case_id:
        query = query.filter(RehabPlan.case_id == case_id)
    if status:
        query = query.filter(RehabPlan.status == status.value)
    return query.order_by(RehabPlan.created_at.desc())


# =============================================================================
# Mutations
# =============================================================================


def create_plan(db: Session, case: Case, data: RehabPlanCreate, actor: User) -> RehabPlan:
    """
    Start a rehab plan.

    Raises:
        ValueError: the case already has an active or paused plan, or has no clinician
    """
    if get_open_plan(db, case.id):
        raise ValueError("Case already has an active rehabilitation plan")

    clinician_id = actor.id if actor.role == Role.CLINICIAN.value else case.clinician_id
    if not clinician_id:
        raise ValueError("Case has no clinician assigned")

    plan = RehabPlan(
        case_id=case.id,
        clinician_id=clinician_id,
        plan_name=data.plan_name,
        start_date=data.start_date or app_today(),
        end_date=data.end_date,
        goals=[g.model_dump(mode="json") for g in data.goals],
        exercises=[e.model_dump(mode="json") for e in data.exercises],
        activities=[a.model_dump(mode="json") for a in data.activities],
        progress_tracking=empty_progress_tracking(),
        modifications=[],
        notes=data.notes,
    )
    db.add(plan)

    if case.status in _PRE_REHAB_STATUSES:
        case.status = CaseStatus.IN_REHAB.value

    db.commit()
    logger.info("Rehab plan created", extra={"case_id": str(case.id), "user_id": str(actor.id)})
    return get_plan(db, plan.id)


def update_plan(db: Session, plan: RehabPlan, data: RehabPlanUpdate, actor: User) -> RehabPlan:
    """
    Partial update; appends a modification record listing the changed fields.

    Raises:
        ValueError: reopening a plan while another one is open on the case
    """
    changes = data.model_dump(exclude_unset=True)
    reason = changes.pop("modification_reason", None)
    for field in ("goals", "exercises", "activities"):
        if changes.get(field) is not None:
            changes[field] = [item.model_dump(mode="json") for item in getattr(data, field)]
    if changes.get("status") is not None:
        changes["status"] = changes["status"].value

    new_status = changes.get("status")
    if new_status in _OPEN_VALUES and plan.status not in _OPEN_VALUES:
        other = get_open_plan(db, plan.case_id)
        if other and other.id != plan.id:
            raise ValueError("Case already has an active rehabilitation plan")

    changed = []
    for field, value in changes.items():
        if value is None and field in ("plan_name", "status", "goals", "exercises", "activities"):
            continue
        setattr(plan, field, value)
        changed.append(field)

    if changed:
        plan.modifications = [
            *plan.modifications,
            {
                "date": utcnow().isoformat(),
                "type": "status_change" if changed == ["status"] else "update",
                "description": f"Updated {', '.join(changed)}",
                "reason": reason,
                "modified_by": str(actor.id),
            },
        ]

    db.commit()
    return get_plan(db, plan.id)


def record_progress(db: Session, plan: RehabPlan, entry: ProgressEntry, actor: User) -> RehabPlan:
    """Append a dated progress entry under its type."""
    value_field = _PROGRESS_VALUE_FIELD[entry.type]
    record = {
        "date": utcnow().isoformat(),
        value_field: getattr(entry, value_field),
        "recorded_by": str(actor.id),
    }
    if entry.type == ProgressType.FUNCTIONAL_IMPROVEMENT and entry.area:
        record["area"] = entry.area
    if entry.notes:
        record["notes"] = entry.notes

    tracking = {**empty_progress_tracking(), **(plan.progress_tracking or {})}
    tracking[entry.type.value] = [*tracking[entry.type.value], record]
    plan.progress_tracking = tracking

    activity_service.log_rehab_progress(
        db,
        worker_id=plan.case.worker_id,
        case_id=plan.case_id,
        rehab_plan_id=plan.id,
        clinician_id=plan.clinician_id,
        progress_type=entry.type.value,
    )
    db.commit()
    return get_plan(db, plan.id)


# =============================================================================
# Stats
# =============================================================================


def _rate(done: int, total: int) -> float:
    return round(done / total * 100, 1) if total else 0.0


def get_stats(db: Session, session: UserSession) -> dict:
    """Role-scoped plan, goal and exercise counts plus related case/appointment figures."""
    plans = scope_plan_query(db.query(RehabPlan), session).all()
    active = [p for p in plans if p.status == RehabPlanStatus.ACTIVE.value]

    goals = [g for p in active for g in (p.goals or [])]
    exercises = [e for p in active for e in (p.exercises or [])]
    completed_goals = sum(1 for g in goals if g.get("status") == GoalStatus.COMPLETED.value)
    completed_exercises = sum(1 for e in exercises if e.get("status") == ItemStatus.COMPLETED.value)

    case_query = db.query(Case).filter(Case.status.in_([s.value for s in ACTIVE_CLINICAL_STATUSES]))
    appointment_query = db.query(Appointment).filter(
        Appointment.scheduled_at > utcnow(),
        Appointment.status.in_([s.value for s in BLOCKING_APPOINTMENT_STATUSES]),
    )
    if session.role == Role.CLINICIAN:
        case_query = case_query.filter(Case.clinician_id == session.user_id)
        appointment_query = appointment_query.filter(Appointment.clinician_id == session.user_id)
    elif session.role == Role.WORKER:
        case_query = case_query.filter(Case.worker_id == session.user_id)
        appointment_query = appointment_query.filter(Appointment.worker_id == session.user_id)
    elif session.role == Role.CASE_MANAGER:
        case_query = case_query.filter(Case.case_manager_id == session.user_id)
        appointment_query = appointment_query.join(Case, Appointment.case_id == Case.id).filter(
            Case.case_manager_id == session.user_id
        )
    elif session.role != Role.ADMIN:
        case_query = case_query.filter(false())
        appointment_query = appointment_query.filter(false())

    return {
        "active_plans": len(active),
        "completed_plans": sum(1 for p in plans if p.status == RehabPlanStatus.COMPLETED.value),
        "total_goals": len(goals),
        "completed_goals": completed_goals,
        "goal_completion_rate": _rate(completed_goals, len(goals)),
        "total_exercises": len(exercises),
        "completed_exercises": completed_exercises,
        "exercise_completion_rate": _rate(completed_exercises, len(exercises)),
        "active_cases": case_query.count(),
        "upcoming_appointments": appointment_query.count(),
    }
