from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from careflow.auth.dependencies import get_db
from careflow.core import config
from careflow.core.errors import SchedulingError, to_http_exception
from careflow.database import ensure_appointment_schema, ensure_reminder_schema
from careflow.scheduling.availability import get_available_slots
from careflow.scheduling.candidates import DoctorSelector
from careflow.scheduling.deadline import Deadline
from careflow.scheduling.rollup import get_monthly_availability

router = APIRouter(tags=['availability'])

MAX_TIMEOUT_MS = 60_000


class SlotResponse(BaseModel):
    time: str
    status: str


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
        ensure_reminder_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc


def build_deadline(timeout_ms: int | None) -> Deadline:
    if timeout_ms is None:
        return Deadline(timeout_seconds=config.QUERY_TIMEOUT_SECONDS)
    return Deadline(timeout_seconds=timeout_ms / 1000)


def build_selector(doctor_id: int | None, hospital_id: int | None, specialty: str | None) -> DoctorSelector:
    return DoctorSelector(
        doctor_id=doctor_id,
        hospital_id=hospital_id,
        specialty=(specialty or '').strip() or None,
    )


@router.get('/slots', response_model=list[SlotResponse])
def list_available_slots(
    day: date = Query(..., alias='date'),
    doctor_id: int | None = Query(default=None),
    hospital_id: int | None = Query(default=None),
    specialty: str | None = Query(default=None),
    timeout_ms: int | None = Query(default=None, ge=1, le=MAX_TIMEOUT_MS),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return get_available_slots(
            db,
            day,
            build_selector(doctor_id, hospital_id, specialty),
            deadline=build_deadline(timeout_ms),
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc


@router.get('/monthly', response_model=dict[str, str])
def monthly_availability(
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
    doctor_id: int | None = Query(default=None),
    hospital_id: int | None = Query(default=None),
    specialty: str | None = Query(default=None),
    timeout_ms: int | None = Query(default=None, ge=1, le=MAX_TIMEOUT_MS),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return get_monthly_availability(
            db,
            year,
            month,
            build_selector(doctor_id, hospital_id, specialty),
            deadline=build_deadline(timeout_ms),
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc
