from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from careflow.auth.dependencies import get_current_patient, get_current_user, get_db
from careflow.core.errors import InvalidInput, SchedulingError, to_http_exception
from careflow.models.appointment import AppointmentStatus
from careflow.models.user import User
from careflow.routes.availability_routes import ensure_database_ready
from careflow.scheduling import booking
from careflow.scheduling.slots import normalize_hhmm

router = APIRouter(tags=['appointments'])

FIRST_AVAILABLE = 'first_available'


class CreateAppointmentRequest(BaseModel):
    doctor_id: int | str | None = None
    hospital_id: int | None = None
    specialty: str | None = None
    date: date
    time: str
    reason: str

    @field_validator('doctor_id')
    @classmethod
    def validate_doctor_id(cls, value: int | str | None) -> int | None:
        if value is None or isinstance(value, int):
            return value

        normalized = value.strip().lower()
        if not normalized or normalized == FIRST_AVAILABLE:
            return None
        if normalized.isdigit():
            return int(normalized)
        raise ValueError('doctor_id must be a doctor id or "first_available".')

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        try:
            return normalize_hhmm(value)
        except InvalidInput as exc:
            raise ValueError(exc.message) from exc

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('A reason for the appointment is required.')
        if len(normalized) > booking.MAX_REASON_LENGTH:
            raise ValueError(f'Reason must be {booking.MAX_REASON_LENGTH} characters or fewer.')
        return normalized

    @field_validator('specialty')
    @classmethod
    def validate_specialty(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class UpdateStatusRequest(BaseModel):
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    hospital_id: int | None = None
    date: date
    time: str
    status: str
    token_number: str | None = None
    reason: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


def _database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail='Database unavailable. Verify DATABASE_URL and database credentials.',
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    request = booking.BookingRequest(
        date=data.date,
        time=data.time,
        reason=data.reason,
        doctor_id=data.doctor_id,
        hospital_id=data.hospital_id,
        specialty=data.specialty,
    )

    try:
        return booking.create_appointment(db, current_user, request)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise _database_unavailable() from exc


@router.get('/mine', response_model=list[AppointmentResponse])
def list_my_appointments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return booking.list_appointments_for(db, current_user)
    except SQLAlchemyError as exc:
        raise _database_unavailable() from exc


@router.get('/queue', response_model=list[AppointmentResponse])
def list_doctor_queue(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return booking.doctor_queue(db, current_user)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise _database_unavailable() from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return booking.cancel_appointment(db, appointment_id, current_user)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise _database_unavailable() from exc


@router.put('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return booking.update_appointment_status(db, appointment_id, data.status.value, current_user)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise _database_unavailable() from exc
