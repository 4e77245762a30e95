"""Creates appointments without double-booking and manages their lifecycle."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from threading import Lock

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from careflow.core.errors import Forbidden, Internal, InvalidInput, NoAvailability, NotFound, SlotTaken, Unavailable
from careflow.models.appointment import Appointment, AppointmentStatus
from careflow.models.doctor import Doctor
from careflow.models.hospital import Hospital
from careflow.models.user import User
from careflow.scheduling.availability import doctor_slots
from careflow.scheduling.candidates import DoctorSelector, active_appointments, load_booked_times, resolve_candidates
from careflow.scheduling.reminders import schedule_reminder, skip_pending_reminders
from careflow.scheduling.slots import normalize_hhmm
from careflow.services.notifications import NotificationSink, log_notification, notify_appointment_created

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 600


class KeyedLock:
    """One mutex per key, created on demand and dropped when unused."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[object, Lock] = {}
        self._holders: dict[object, int] = {}

    @contextmanager
    def hold(self, key):
        with self._guard:
            lock = self._locks.setdefault(key, Lock())
            self._holders[key] = self._holders.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[key] -= 1
                if not self._holders[key]:
                    del self._holders[key]
                    del self._locks[key]


_doctor_day_locks = KeyedLock()


@dataclass
class BookingRequest:
    date: date
    time: str
    reason: str
    doctor_id: int | None = None
    hospital_id: int | None = None
    specialty: str | None = None

    @property
    def selector(self) -> DoctorSelector:
        return DoctorSelector(doctor_id=self.doctor_id, hospital_id=self.hospital_id, specialty=self.specialty)


def _booking_query(db: Session, doctor_id: int, hospital_id: int | None, day: date):
    query = active_appointments(db).filter(Appointment.doctor_id == doctor_id, Appointment.date == day)
    if hospital_id is None:
        return query.filter(Appointment.hospital_id.is_(None))
    return query.filter(Appointment.hospital_id == hospital_id)


def _slot_holder(db: Session, doctor_id: int, day: date, slot_time: str) -> Appointment | None:
    """The active booking holding this doctor's time, at any hospital."""
    return active_appointments(db).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.date == day,
        Appointment.time == slot_time,
    ).first()


def _daily_loads(db: Session, doctor_ids: list[int], day: date) -> dict[int, int]:
    rows = db.query(Appointment.doctor_id, func.count(Appointment.id)).filter(
        Appointment.doctor_id.in_(doctor_ids),
        Appointment.date == day,
        Appointment.status != AppointmentStatus.CANCELLED.value,
    ).group_by(Appointment.doctor_id).all()
    return {doctor_id: count for doctor_id, count in rows}


def _pick_first_available(db: Session, request: BookingRequest, slot_time: str) -> Doctor:
    doctors = resolve_candidates(db, request.selector)
    if not doctors:
        raise NoAvailability('No doctors available for this specialty at this hospital.')

    booked = load_booked_times(db, [doctor.id for doctor in doctors], request.date, request.date)
    open_doctors = [
        doctor for doctor in doctors
        if slot_time in doctor_slots(doctor, request.date)
        and slot_time not in booked.get((doctor.id, request.date), set())
    ]
    if not open_doctors:
        raise NoAvailability('No doctor has an open slot at this time.')

    # Least loaded doctor that day wins; doctor id breaks ties.
    loads = _daily_loads(db, [doctor.id for doctor in open_doctors], request.date)
    return min(open_doctors, key=lambda doctor: (loads.get(doctor.id, 0), doctor.id))


def resolve_booking_doctor(db: Session, request: BookingRequest, slot_time: str) -> Doctor:
    if request.selector.first_available:
        return _pick_first_available(db, request, slot_time)

    doctor = resolve_candidates(db, request.selector)[0]
    if request.hospital_id is not None:
        if db.query(Hospital.id).filter(Hospital.id == request.hospital_id).first() is None:
            raise NotFound('Hospital not found.')
        if request.hospital_id != doctor.hospital_id:
            raise InvalidInput('Doctor does not practice at this hospital.')
    if not doctor.is_available:
        raise Unavailable('Doctor is not available for appointments.')
    if slot_time not in doctor_slots(doctor, request.date):
        raise NoAvailability('Doctor does not have a slot at this time.')
    return doctor


def create_appointment(
    db: Session,
    patient: User,
    request: BookingRequest,
    now: datetime | None = None,
    notifier: NotificationSink = log_notification,
) -> Appointment:
    """Book ``request`` for ``patient``.

    Bookings for one doctor and day are serialized in-process, and the
    active-slot unique index rejects whatever still races past the check
    (other processes included). A named doctor is only booked at their own
    hospital. A rejected insert surfaces as ``SlotTaken``.
    """
    slot_time = normalize_hhmm(request.time)
    reason = (request.reason or '').strip()
    if not reason:
        raise InvalidInput('A reason for the appointment is required.')
    if len(reason) > MAX_REASON_LENGTH:
        raise InvalidInput(f'Reason must be {MAX_REASON_LENGTH} characters or fewer.')

    doctor = resolve_booking_doctor(db, request, slot_time)
    hospital_id = request.hospital_id if request.hospital_id is not None else doctor.hospital_id

    with _doctor_day_locks.hold((doctor.id, request.date)):
        try:
            if _slot_holder(db, doctor.id, request.date, slot_time) is not None:
                raise SlotTaken('Doctor already has an appointment at this time in this hospital.')

            token_number = str(_booking_query(db, doctor.id, hospital_id, request.date).count() + 1)

            appointment = Appointment(
                patient_id=patient.id,
                doctor_id=doctor.id,
                hospital_id=hospital_id,
                date=request.date,
                time=slot_time,
                reason=reason,
                status=AppointmentStatus.PENDING.value,
                token_number=token_number,
            )
            db.add(appointment)
            db.commit()
        except SlotTaken:
            db.rollback()
            raise
        except IntegrityError as exc:
            db.rollback()
            raise SlotTaken('Doctor already has an appointment at this time in this hospital.') from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Failed to persist appointment')
            raise Internal('Database unavailable.') from exc

    db.refresh(appointment)
    logger.info(
        f"Booked appointment {appointment.id}: doctor={doctor.id}, hospital={hospital_id}, "
        f"date={appointment.date}, time={appointment.time}, token={appointment.token_number}"
    )

    try:
        schedule_reminder(db, appointment, patient.phone_number, now=now)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f'Failed to schedule reminder for appointment {appointment.id}')

    notify_appointment_created(notifier, patient, doctor, appointment)
    return appointment


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise NotFound('Appointment not found.')
    return appointment


def _is_treating_doctor(appointment: Appointment, user: User) -> bool:
    return appointment.doctor is not None and appointment.doctor.user_id == user.id


def cancel_appointment(db: Session, appointment_id: int, user: User) -> Appointment:
    """Soft-cancel an appointment, freeing its slot and dropping its reminder."""
    appointment = get_appointment(db, appointment_id)

    if not (user.role == 'admin' or appointment.patient_id == user.id or _is_treating_doctor(appointment, user)):
        raise Forbidden('Not authorized to cancel this appointment.')

    if appointment.status == AppointmentStatus.CANCELLED.value:
        return appointment

    appointment.status = AppointmentStatus.CANCELLED.value
    skip_pending_reminders(db, appointment.id)
    db.commit()
    db.refresh(appointment)
    logger.info(f'Cancelled appointment {appointment.id}')
    return appointment


def update_appointment_status(db: Session, appointment_id: int, new_status: str, user: User) -> Appointment:
    try:
        status = AppointmentStatus(new_status)
    except ValueError as exc:
        raise InvalidInput(f'Unknown appointment status "{new_status}".') from exc

    appointment = get_appointment(db, appointment_id)
    if not (user.role == 'admin' or _is_treating_doctor(appointment, user)):
        raise Forbidden('Not authorized to update this appointment status.')

    if status is AppointmentStatus.CANCELLED:
        return cancel_appointment(db, appointment_id, user)

    if appointment.status == AppointmentStatus.CANCELLED.value:
        raise InvalidInput('Cancelled appointments cannot be reopened.')

    appointment.status = status.value
    db.commit()
    db.refresh(appointment)
    return appointment


def list_appointments_for(db: Session, user: User) -> list[Appointment]:
    query = db.query(Appointment)
    if user.role == 'doctor':
        query = query.join(Doctor, Appointment.doctor_id == Doctor.id).filter(Doctor.user_id == user.id)
    elif user.role != 'admin':
        query = query.filter(Appointment.patient_id == user.id)

    return query.order_by(Appointment.date.asc(), Appointment.time.asc()).all()


QUEUE_STATUSES = (
    AppointmentStatus.NOW_SERVING,
    AppointmentStatus.UP_NEXT,
    AppointmentStatus.WAITING,
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
)


def doctor_queue(db: Session, user: User, today: date | None = None) -> list[Appointment]:
    """Appointments still to be seen by the signed-in doctor, from today on."""
    if user.role != 'doctor':
        raise Forbidden('Only doctors have an appointment queue.')

    today = today or date.today()
    return db.query(Appointment).join(Doctor, Appointment.doctor_id == Doctor.id).filter(
        Doctor.user_id == user.id,
        Appointment.date >= today,
        Appointment.status.in_([status.value for status in QUEUE_STATUSES]),
    ).order_by(Appointment.date.asc(), Appointment.time.asc()).all()
