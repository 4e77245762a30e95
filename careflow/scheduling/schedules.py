"""Replaces a doctor's recurring weekly working hours."""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from careflow.core.errors import Forbidden, InvalidInput, NotFound
from careflow.models.doctor import Doctor, Weekday, WorkSchedule
from careflow.models.user import User
from careflow.scheduling.slots import normalize_hhmm, parse_hhmm

logger = logging.getLogger(__name__)


@dataclass
class ScheduleWindow:
    from_time: str
    to_time: str
    enabled: bool = True


def validate_window(weekday: Weekday, window: ScheduleWindow) -> ScheduleWindow:
    start = parse_hhmm(window.from_time)
    end = parse_hhmm(window.to_time)
    if window.enabled and start >= end:
        raise InvalidInput(f'{weekday.value}: start time must be before end time.')
    return ScheduleWindow(
        from_time=normalize_hhmm(window.from_time),
        to_time=normalize_hhmm(window.to_time),
        enabled=window.enabled,
    )


def replace_work_schedule(
    db: Session,
    doctor_id: int,
    windows: dict[Weekday, ScheduleWindow],
    user: User,
    appointment_duration: int | None = None,
) -> Doctor:
    """Swap the whole weekly schedule; weekdays left out become days off."""
    doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
    if doctor is None:
        raise NotFound('Doctor not found.')

    if user.role != 'admin' and doctor.user_id != user.id:
        raise Forbidden('Not authorized to update this doctor schedule.')

    if appointment_duration is not None and appointment_duration <= 0:
        raise InvalidInput('Appointment duration must be a positive number of minutes.')

    validated = {weekday: validate_window(weekday, window) for weekday, window in windows.items()}

    # Old rows must be gone before new ones hit the (doctor_id, weekday) constraint.
    doctor.work_schedule.clear()
    db.flush()

    doctor.work_schedule.extend(
        WorkSchedule(
            weekday=weekday,
            from_time=window.from_time,
            to_time=window.to_time,
            enabled=window.enabled,
        )
        for weekday, window in sorted(validated.items(), key=lambda item: list(Weekday).index(item[0]))
    )
    if appointment_duration is not None:
        doctor.appointment_duration = appointment_duration

    db.commit()
    db.refresh(doctor)
    logger.info(f'Updated work schedule for doctor {doctor.id}: {len(validated)} weekday(s)')
    return doctor
