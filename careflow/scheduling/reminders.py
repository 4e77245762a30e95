"""Durable reminder calls placed a fixed lead time before an appointment."""

import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from careflow.core import config
from careflow.database import SessionLocal
from careflow.models.appointment import Appointment, AppointmentStatus
from careflow.models.reminder import Reminder, ReminderStatus
from careflow.services.telephony import TelephonyError, normalize_phone_number, trigger_call

logger = logging.getLogger(__name__)

CallTrigger = Callable[[str, str], object]


def reminder_fire_time(appointment: Appointment, lead_minutes: int | None = None) -> datetime:
    lead = config.REMINDER_LEAD_MINUTES if lead_minutes is None else lead_minutes
    return appointment.starts_at - timedelta(minutes=lead)


def schedule_reminder(
    db: Session,
    appointment: Appointment,
    phone_number: str | None,
    now: datetime | None = None,
    announcement_url: str | None = None,
) -> Reminder | None:
    """Add a pending reminder for ``appointment``; the caller commits.

    Nothing is scheduled when the fire time has already passed or the patient
    has no phone number.
    """
    now = now or datetime.now()
    fire_at = reminder_fire_time(appointment)

    if fire_at <= now:
        logger.info(f"Appointment {appointment.id} starts too soon for a reminder call (fire time {fire_at:%Y-%m-%d %H:%M})")
        return None

    normalized_phone = normalize_phone_number(phone_number)
    if not normalized_phone:
        logger.info(f"Patient for appointment {appointment.id} has no phone number; no reminder scheduled")
        return None

    reminder = Reminder(
        appointment_id=appointment.id,
        phone_number=normalized_phone,
        announcement_url=announcement_url or config.TWILIO_RECORDED_CALL_URL,
        fire_at=fire_at,
        status=ReminderStatus.PENDING.value,
        attempts=0,
    )
    db.add(reminder)
    logger.info(f"Reminder call for appointment {appointment.id} scheduled at {fire_at:%Y-%m-%d %H:%M}")
    return reminder


def skip_pending_reminders(db: Session, appointment_id: int) -> int:
    """Mark every pending reminder of an appointment as skipped; the caller commits."""
    return db.query(Reminder).filter(
        Reminder.appointment_id == appointment_id,
        Reminder.status == ReminderStatus.PENDING.value,
    ).update({Reminder.status: ReminderStatus.SKIPPED.value}, synchronize_session='fetch')


def _claimable(now: datetime):
    stale_before = now - timedelta(seconds=config.REMINDER_CLAIM_TIMEOUT_SECONDS)
    return or_(
        Reminder.status == ReminderStatus.PENDING.value,
        and_(Reminder.status == ReminderStatus.DISPATCHING.value, Reminder.claimed_at < stale_before),
    )


def due_reminder_ids(db: Session, now: datetime, limit: int | None = None) -> list[int]:
    """Ids of reminders that are due, plus claims abandoned by a dispatcher that died mid-call."""
    rows = db.query(Reminder.id).filter(
        _claimable(now),
        Reminder.fire_at <= now,
    ).order_by(Reminder.fire_at.asc(), Reminder.id.asc()).limit(limit or config.REMINDER_BATCH_SIZE).all()
    return [reminder_id for (reminder_id,) in rows]


def claim_reminder(db: Session, reminder_id: int, now: datetime) -> bool:
    """Take a due reminder for this dispatcher and commit the claim.

    The conditional update only succeeds for one dispatcher, so a reminder is
    never called twice by concurrent passes. Returns False when another
    dispatcher got there first.
    """
    claimed = db.query(Reminder).filter(
        Reminder.id == reminder_id,
        Reminder.fire_at <= now,
        _claimable(now),
    ).update(
        {
            Reminder.status: ReminderStatus.DISPATCHING.value,
            Reminder.claimed_at: now,
            Reminder.attempts: func.coalesce(Reminder.attempts, 0) + 1,
        },
        synchronize_session=False,
    )
    db.commit()
    return claimed == 1


def dispatch_due_reminders(
    db: Session,
    now: datetime | None = None,
    trigger: CallTrigger = trigger_call,
) -> dict[str, int]:
    """Fire every reminder whose time has come.

    Call failures are recorded on the reminder and logged; they never
    propagate. Returns a count per resulting status.
    """
    now = now or datetime.now()
    summary = {status.value: 0 for status in (ReminderStatus.SENT, ReminderStatus.FAILED, ReminderStatus.SKIPPED)}

    for reminder_id in due_reminder_ids(db, now):
        if not claim_reminder(db, reminder_id, now):
            continue

        reminder = db.get(Reminder, reminder_id)
        appointment = reminder.appointment

        if appointment is None or appointment.status == AppointmentStatus.CANCELLED.value:
            reminder.status = ReminderStatus.SKIPPED.value
        else:
            try:
                trigger(reminder.phone_number, reminder.announcement_url)
            except TelephonyError as exc:
                logger.error(f"Reminder call {reminder.id} for appointment {reminder.appointment_id} failed: {exc}")
                reminder.status = ReminderStatus.FAILED.value
                reminder.last_error = str(exc)
            except Exception as exc:
                logger.exception(f"Reminder call {reminder.id} for appointment {reminder.appointment_id} crashed")
                reminder.status = ReminderStatus.FAILED.value
                reminder.last_error = f"{type(exc).__name__}: {exc}"
            else:
                reminder.status = ReminderStatus.SENT.value
                reminder.sent_at = now

        summary[reminder.status] += 1
        db.commit()

    return summary


def run_dispatch_pass(session_factory=SessionLocal, trigger: CallTrigger = trigger_call) -> dict[str, int]:
    db = session_factory()
    try:
        return dispatch_due_reminders(db, trigger=trigger)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
