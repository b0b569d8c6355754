"""Clinicians router - availability and workload."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from app.db.enums import Role
from app.db.models import User
from app.schemas.auth import UserSession
from app.schemas.clinician import (
    ActiveCase,
    AvailabilityUpdate,
    AvailableClinician,
    ClinicianRead,
    ClinicianWorkloadResponse,
    Workload,
)
from app.services import clinician_service

router = APIRouter()

_STAFF_ROLES = (Role.ADMIN, Role.CASE_MANAGER)


def _get_clinician_for(db: Session, clinician_id: UUID, session: UserSession) -> User:
    """Admins, case managers and the clinician themself."""
    if session.role not in _STAFF_ROLES and session.user_id != clinician_id:
        raise HTTPException(status_code=403, detail="Access denied")
    clinician = clinician_service.get_clinician(db, clinician_id)
    if not clinician:
        raise HTTPException(status_code=404, detail="Clinician not found")
    return clinician


@router.get("", response_model=list[ClinicianRead])
def list_clinicians(
    session: UserSession = Depends(require_roles(list(_STAFF_ROLES))),
    db: Session = Depends(get_db),
):
    return [ClinicianRead.model_validate(c) for c in clinician_service.list_active_clinicians(db)]


@router.get("/available", response_model=list[AvailableClinician])
def available_clinicians(
    session: UserSession = Depends(require_roles(list(_STAFF_ROLES))),
    db: Session = Depends(get_db),
):
    """Available clinicians ranked by availability score (highest first)."""
    return [
        AvailableClinician(
            **ClinicianRead.model_validate(clinician).model_dump(),
            workload=Workload(**workload),
        )
        for clinician, workload in clinician_service.available_with_workload(db)
    ]


@router.get("/{clinician_id}/workload", response_model=ClinicianWorkloadResponse)
def clinician_workload(
    clinician_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    clinician = _get_clinician_for(db, clinician_id, session)
    workload = clinician_service.workloads(db, [clinician.id])[clinician.id]
    return ClinicianWorkloadResponse(
        clinician=ClinicianRead.model_validate(clinician),
        workload=Workload(**workload),
        active_cases=[ActiveCase.model_validate(c) for c in clinician_service.active_cases(db, clinician.id)],
    )


@router.put(
    "/{clinician_id}/availability",
    response_model=ClinicianRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_availability(
    clinician_id: UUID,
    data: AvailabilityUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    clinician = _get_clinician_for(db, clinician_id, session)
    clinician = clinician_service.set_availability(
        db, clinician, data.is_available, data.availability_reason
    )
    return ClinicianRead.model_validate(clinician)
