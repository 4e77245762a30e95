"""Resolves which doctors a scheduling request is about."""

from dataclasses import dataclass
from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session

from careflow.core.errors import InvalidInput, NotFound
from careflow.models.appointment import Appointment, AppointmentStatus
from careflow.models.doctor import Doctor
from careflow.models.hospital import Hospital


@dataclass(frozen=True)
class DoctorSelector:
    """Either one named doctor, or "first available" at a hospital."""

    doctor_id: int | None = None
    hospital_id: int | None = None
    specialty: str | None = None

    @property
    def first_available(self) -> bool:
        return self.doctor_id is None


def resolve_candidates(db: Session, selector: DoctorSelector) -> list[Doctor]:
    if selector.doctor_id is not None:
        doctor = db.query(Doctor).filter(Doctor.id == selector.doctor_id).first()
        if doctor is None:
            raise NotFound('Doctor not found.')
        return [doctor]

    if selector.hospital_id is None:
        raise InvalidInput('A hospital is required when no specific doctor is selected.')

    hospital = db.query(Hospital.id).filter(Hospital.id == selector.hospital_id).first()
    if hospital is None:
        raise NotFound('Hospital not found.')

    query = db.query(Doctor).filter(
        Doctor.hospital_id == selector.hospital_id,
        Doctor.is_available.is_(True),
    )

    specialty = (selector.specialty or '').strip()
    if specialty:
        query = query.filter(func.lower(Doctor.specialty) == specialty.lower())

    return query.order_by(Doctor.id.asc()).all()


def active_appointments(db: Session):
    return db.query(Appointment).filter(Appointment.status != AppointmentStatus.CANCELLED.value)


def load_booked_times(
    db: Session,
    doctor_ids: list[int],
    start_date: date,
    end_date: date,
) -> dict[tuple[int, date], set[str]]:
    """Booked slot times per (doctor, day) over a date range, in one query."""
    booked: dict[tuple[int, date], set[str]] = {}
    if not doctor_ids:
        return booked

    rows = db.query(Appointment.doctor_id, Appointment.date, Appointment.time).filter(
        Appointment.doctor_id.in_(doctor_ids),
        Appointment.date >= start_date,
        Appointment.date <= end_date,
        Appointment.status != AppointmentStatus.CANCELLED.value,
    ).all()

    for doctor_id, booked_date, booked_time in rows:
        booked.setdefault((doctor_id, booked_date), set()).add(booked_time)

    return booked
