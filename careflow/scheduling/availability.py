"""Answers "what times can a patient book on this day?"."""

from datetime import date

from sqlalchemy.orm import Session

from careflow.models.doctor import Doctor, Weekday
from careflow.scheduling.candidates import DoctorSelector, load_booked_times, resolve_candidates
from careflow.scheduling.deadline import Deadline, check_deadline
from careflow.scheduling.slots import generate_schedule_slots, slot_sort_key

AVAILABLE_STATUS = 'available'


def doctor_slots(doctor: Doctor, day: date) -> list[str]:
    schedule = doctor.schedule_for(Weekday.for_date(day))
    return generate_schedule_slots(schedule, doctor.appointment_duration)


def open_slots(doctor: Doctor, day: date, booked_times: set[str]) -> list[str]:
    return [slot for slot in doctor_slots(doctor, day) if slot not in booked_times]


def get_available_slots(
    db: Session,
    day: date,
    selector: DoctorSelector,
    deadline: Deadline | None = None,
) -> list[dict]:
    """Merged, sorted open slots across every candidate doctor.

    A doctor that is not accepting appointments contributes nothing, so an
    unavailable named doctor yields an empty list rather than an error.
    """
    doctors = [doctor for doctor in resolve_candidates(db, selector) if doctor.is_available]
    if not doctors:
        return []

    booked = load_booked_times(db, [doctor.id for doctor in doctors], day, day)

    available: set[str] = set()
    for doctor in doctors:
        check_deadline(deadline)
        available.update(open_slots(doctor, day, booked.get((doctor.id, day), set())))

    return [
        {'time': slot_time, 'status': AVAILABLE_STATUS}
        for slot_time in sorted(available, key=slot_sort_key)
    ]
