"""Appointments router - scheduling with clinician conflict checks."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_current_session, get_current_user, get_db, require_csrf_header, require_roles
from app.db.enums import AppointmentStatus, AppointmentType, Role
from app.db.models import Appointment, User
from app.schemas.appointment import (
    AppointmentCreate,
    AppointmentRead,
    AppointmentStats,
    AppointmentStatusUpdate,
    AppointmentUpdate,
)
from app.schemas.auth import UserSession
from app.schemas.user import UserSummary
from app.services import appointment_service, case_service
from app.services.appointment_service import AppointmentConflictError
from app.utils.dates import app_today
from app.utils.pagination import PaginatedResponse, PaginationParams, get_pagination, paginate_query

router = APIRouter()


def _appointment_to_read(appointment: Appointment) -> AppointmentRead:
    return AppointmentRead(
        id=appointment.id,
        case_id=appointment.case_id,
        case_number=appointment.case.case_number if appointment.case else None,
        worker=UserSummary.model_validate(appointment.worker),
        clinician=UserSummary.model_validate(appointment.clinician),
        appointment_type=appointment.appointment_type,
        scheduled_at=appointment.scheduled_at,
        duration_minutes=appointment.duration_minutes,
        location=appointment.location,
        status=appointment.status,
        purpose=appointment.purpose,
        notes=appointment.notes,
        cancelled_by_id=appointment.cancelled_by_id,
        cancelled_at=appointment.cancelled_at,
        cancellation_reason=appointment.cancellation_reason,
        completed_at=appointment.completed_at,
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
    )


def _get_appointment_or_404(db: Session, appointment_id: UUID) -> Appointment:
    appointment = appointment_service.get_appointment(db, appointment_id)
    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appointment


def _can_change_status(appointment: Appointment, session: UserSession, new_status: AppointmentStatus) -> bool:
    # Workers may cancel their own appointments but not complete or confirm them
    if appointment_service.can_manage_appointment(appointment, session):
        return True
    return new_status == AppointmentStatus.CANCELLED and appointment.worker_id == session.user_id


# =============================================================================
# Read
# =============================================================================

@router.get("", response_model=PaginatedResponse[AppointmentRead])
def list_appointments(
    case_id: UUID | None = None,
    clinician_id: UUID | None = None,
    worker_id: UUID | None = None,
    status: AppointmentStatus | None = None,
    appointment_type: AppointmentType | None = None,
    day: date | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List appointments in scope, soonest first. `day` is a calendar day in APP_TIMEZONE."""
    try:
        query = appointment_service.list_appointments_query(
            db, session,
            case_id=case_id,
            clinician_id=clinician_id,
            worker_id=worker_id,
            status=status,
            appointment_type=appointment_type.value if appointment_type else None,
            day=day,
        )
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    items, total = paginate_query(query, pagination)
    return PaginatedResponse.create([_appointment_to_read(a) for a in items], total, pagination)


@router.get("/dashboard/stats", response_model=AppointmentStats)
def appointment_stats(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    stats = appointment_service.get_stats(db, session, app_today())
    stats["today_appointments"] = [_appointment_to_read(a) for a in stats["today_appointments"]]
    return AppointmentStats(**stats)


@router.get("/{appointment_id}", response_model=AppointmentRead)
def get_appointment(
    appointment_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    appointment = _get_appointment_or_404(db, appointment_id)
    if not appointment_service.can_view_appointment(appointment, session):
        raise HTTPException(status_code=403, detail="Access denied to this appointment")
    return _appointment_to_read(appointment)


# =============================================================================
# Write
# =============================================================================

@router.post(
    "",
    response_model=AppointmentRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header), Depends(require_roles([Role.CLINICIAN, Role.CASE_MANAGER]))],
)
def create_appointment(
    data: AppointmentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Book an appointment; 409 when the clinician is already booked for that slot."""
    case = case_service.get_case(db, data.case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    try:
        appointment = appointment_service.create_appointment(db, case, data, actor=user)
    except AppointmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _appointment_to_read(appointment)


@router.put("/{appointment_id}", response_model=AppointmentRead, dependencies=[Depends(require_csrf_header)])
def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    appointment = _get_appointment_or_404(db, appointment_id)
    if not appointment_service.can_manage_appointment(appointment, session):
        raise HTTPException(status_code=403, detail="Not authorized to modify this appointment")
    try:
        appointment = appointment_service.update_appointment(db, appointment, data)
    except AppointmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _appointment_to_read(appointment)


@router.put("/{appointment_id}/status", response_model=AppointmentRead, dependencies=[Depends(require_csrf_header)])
def change_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    user: User = Depends(get_current_user),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    appointment = _get_appointment_or_404(db, appointment_id)
    if not _can_change_status(appointment, session, data.status):
        raise HTTPException(status_code=403, detail="Not authorized to modify this appointment")
    try:
        appointment = appointment_service.change_status(db, appointment, data.status, actor=user, reason=data.reason)
    except AppointmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _appointment_to_read(appointment)


@router.delete("/{appointment_id}", response_model=AppointmentRead, dependencies=[Depends(require_csrf_header)])
def cancel_appointment(
    appointment_id: UUID,
    user: User = Depends(get_current_user),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Soft cancel. The row is kept with status `cancelled`."""
    appointment = _get_appointment_or_404(db, appointment_id)
    if not _can_change_status(appointment, session, AppointmentStatus.CANCELLED):
        raise HTTPException(status_code=403, detail="Not authorized to cancel this appointment")
    appointment = appointment_service.cancel_appointment(db, appointment, actor=user)
    return _appointment_to_read(appointment)
