"""
Fire-and-forget notifications for appointment events.

Persisting and delivering notifications belongs to another service; here they
are handed to a sink callable, which defaults to the application log.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

NotificationSink = Callable[[int, str, str, str, str, str], None]


def log_notification(recipient_id: int, recipient_kind: str, title: str, message: str, category: str, link: str) -> None:
    logger.info(f"Notification for {recipient_kind} {recipient_id}: {title} - {message} ({category}, {link})")


def notify_appointment_created(sink: NotificationSink, patient, doctor, appointment) -> None:
    """Tell the patient and the doctor about a new booking. Never raises."""
    day = appointment.date.strftime("%a %b %d %Y")
    doctor_name = doctor.name or "your doctor"
    patient_name = patient.name or "a patient"

    messages = [
        (
            patient.id,
            "Patient",
            "Appointment Created",
            f"Your appointment with Dr. {doctor_name} on {day} at {appointment.time} is pending. "
            f"Your token number is {appointment.token_number}.",
            f"/patient/appointments/{appointment.id}",
        ),
        (
            doctor.id,
            "Doctor",
            "New Appointment Request",
            f"New appointment request from {patient_name} on {day} at {appointment.time}. "
            f"Token: {appointment.token_number}.",
            f"/doctor/appointments/{appointment.id}",
        ),
    ]

    for recipient_id, recipient_kind, title, message, link in messages:
        try:
            sink(recipient_id, recipient_kind, title, message, "Appointment", link)
        except Exception:
            logger.warning(f"Failed to notify {recipient_kind} {recipient_id} about appointment {appointment.id}", exc_info=True)
