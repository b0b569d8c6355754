"""
Auto-assignment of case manager, clinician and priority at case creation.

All selection is workload based: the candidate with the fewest open cases
wins, ties broken by account age.
"""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.enums import ACTIVE_CLINICAL_STATUSES, CasePriority, CaseStatus, Role
from app.db.models import Case, User

logger = logging.getLogger(__name__)

# Body-part keyword -> specialty keyword (both matched as lowercase substrings)
SPECIALTY_RULES: list[tuple[tuple[str, ...], str]] = [
    (("back", "spine"), "orthopedic"),
    (("hand", "wrist"), "hand"),
    (("knee", "leg"), "sports"),
]

_ACTIVE_CLINICAL_VALUES = [s.value for s in ACTIVE_CLINICAL_STATUSES]


def _case_counts(db: Session, column, user_ids: list[UUID], statuses: list[str]) -> dict[UUID, int]:
    if not user_ids:
        return {}
    rows = (
        db.query(column, func.count(Case.id))
        .filter(column.in_(user_ids), Case.status.in_(statuses))
        .group_by(column)
        .all()
    )
    return {user_id: count for user_id, count in rows}


def _least_loaded(candidates: list[User], counts: dict[UUID, int]) -> User | None:
    if not candidates:
        return None
    return min(candidates, key=lambda u: (counts.get(u.id, 0), u.created_at))


def select_case_manager(db: Session) -> User | None:
    """Active case manager with the fewest non-closed cases."""
    managers = db.query(User).filter(
        User.role == Role.CASE_MANAGER.value,
        User.is_active.is_(True),
    ).all()
    open_statuses = [s.value for s in CaseStatus if s != CaseStatus.CLOSED]
    counts = _case_counts(db, Case.case_manager_id, [m.id for m in managers], open_statuses)
    return _least_loaded(managers, counts)


def specialty_for_body_part(body_part: str | None) -> str | None:
    if not body_part:
        return None
    part = body_part.lower()
    for keywords, specialty in SPECIALTY_RULES:
        if any(keyword in part for keyword in keywords):
            return specialty
    return None


def select_clinician(db: Session, injury_details: dict | None) -> User | None:
    """
    Pick a clinician for a new case.

    Available clinicians whose specialty matches the injured body part are
    preferred; otherwise every available clinician is considered. The one
    with the fewest active cases wins. Returns None when nobody is available.
    """
    clinicians = db.query(User).filter(
        User.role == Role.CLINICIAN.value,
        User.is_active.is_(True),
        User.is_available.is_(True),
    ).all()
    if not clinicians:
        return None

    specialty = specialty_for_body_part((injury_details or {}).get("body_part"))
    candidates = clinicians
    if specialty:
        matched = [c for c in clinicians if c.specialty and specialty in c.specialty.lower()]
        if matched:
            candidates = matched

    counts = _case_counts(db, Case.clinician_id, [c.id for c in candidates], _ACTIVE_CLINICAL_VALUES)
    chosen = _least_loaded(candidates, counts)
    logger.info(
        "Auto-selected clinician",
        extra={"user_id": str(chosen.id), "specialty_match": candidates is not clinicians},
    )
    return chosen


def first_active_clinician(db: Session) -> User | None:
    return db.query(User).filter(
        User.role == Role.CLINICIAN.value,
        User.is_active.is_(True),
    ).order_by(User.created_at).first()


def derive_priority(injury_severity: str | None, incident_type: str | None) -> CasePriority:
    """First matching rule wins: urgent, then high, then low; medium otherwise."""
    if injury_severity == "severe" or incident_type in ("fatality", "lost_time"):
        return CasePriority.URGENT
    if injury_severity == "moderate" or incident_type == "medical_treatment":
        return CasePriority.HIGH
    if injury_severity == "minor" or incident_type in ("near_miss", "first_aid"):
        return CasePriority.LOW
    return CasePriority.MEDIUM
