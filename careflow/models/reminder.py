"""Reminder model definitions."""

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from careflow.database import Base


class ReminderStatus(str, enum.Enum):
    PENDING = "pending"
    DISPATCHING = "dispatching"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class Reminder(Base):
    """A durable one-shot reminder call due shortly before an appointment."""
    __tablename__ = "reminders"

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, index=True)
    phone_number = Column(String, nullable=False)
    announcement_url = Column(String)
    fire_at = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=ReminderStatus.PENDING.value)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(String)
    claimed_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.now)
    sent_at = Column(DateTime)

    appointment = relationship("Appointment")


Index("idx_reminders_status_fire_at", Reminder.status, Reminder.fire_at)
