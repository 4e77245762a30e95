"""Appointment model definitions."""

import enum
from datetime import datetime, time

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import relationship

from careflow.database import Base
from careflow.models import doctor, hospital, user  # noqa: F401 - relationship targets


class AppointmentStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NOW_SERVING = "Now Serving"
    UP_NEXT = "Up Next"
    WAITING = "Waiting"


class Appointment(Base):
    """Represents a booked appointment."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    hospital_id = Column(Integer, ForeignKey("hospitals.id"), nullable=True)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.PENDING.value)
    token_number = Column(String)
    reason = Column(String)
    created_at = Column(DateTime, default=datetime.now)

    patient = relationship("User")
    doctor = relationship("Doctor")

    @property
    def starts_at(self) -> datetime:
        hour, minute = (int(part) for part in self.time.split(":"))
        return datetime.combine(self.date, time(hour, minute))


# Only one live booking per doctor, hospital and slot; cancelled rows free the slot.
Index(
    "uq_appointments_active_slot",
    Appointment.doctor_id,
    func.coalesce(Appointment.hospital_id, 0),
    Appointment.date,
    Appointment.time,
    unique=True,
    sqlite_where=Appointment.status != AppointmentStatus.CANCELLED.value,
    postgresql_where=Appointment.status != AppointmentStatus.CANCELLED.value,
)
Index("idx_appointments_doctor_date", Appointment.doctor_id, Appointment.date)
