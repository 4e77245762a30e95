"""Per-day availability classification for a whole calendar month."""

import calendar
from datetime import date, timedelta

from sqlalchemy.orm import Session

from careflow.core.errors import InvalidInput
from careflow.scheduling.availability import doctor_slots
from careflow.scheduling.candidates import DoctorSelector, load_booked_times, resolve_candidates
from careflow.scheduling.deadline import Deadline, check_deadline

UNAVAILABLE = 'unavailable'
PARTIALLY_AVAILABLE = 'partially_available'
FULLY_AVAILABLE = 'fully_available'


def classify_day(total_possible: int, booked_count: int) -> str:
    if total_possible <= 0 or booked_count >= total_possible:
        return UNAVAILABLE
    if booked_count > 0:
        return PARTIALLY_AVAILABLE
    return FULLY_AVAILABLE


def month_days(year: int, month: int) -> list[date]:
    if not 1 <= month <= 12:
        raise InvalidInput('Month must be between 1 and 12.')
    if not 1 <= year <= 9999:
        raise InvalidInput('Year is out of range.')

    first_day = date(year, month, 1)
    day_count = calendar.monthrange(year, month)[1]
    return [first_day + timedelta(days=offset) for offset in range(day_count)]


def get_monthly_availability(
    db: Session,
    year: int,
    month: int,
    selector: DoctorSelector,
    deadline: Deadline | None = None,
) -> dict[str, str]:
    days = month_days(year, month)
    doctors = [doctor for doctor in resolve_candidates(db, selector) if doctor.is_available]

    booked = load_booked_times(db, [doctor.id for doctor in doctors], days[0], days[-1])

    rollup: dict[str, str] = {}
    for day in days:
        check_deadline(deadline)

        total_possible = 0
        booked_times: set[str] = set()
        for doctor in doctors:
            total_possible += len(doctor_slots(doctor, day))
            booked_times.update(booked.get((doctor.id, day), set()))

        rollup[day.isoformat()] = classify_day(total_possible, len(booked_times))

    return rollup
