"""Doctor and weekly work schedule model definitions."""

import enum
from datetime import date

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from careflow.core import config
from careflow.database import Base
from careflow.models import hospital, user  # noqa: F401 - relationship targets


class Weekday(str, enum.Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def for_date(cls, day: date) -> "Weekday":
        return list(cls)[day.weekday()]


class Doctor(Base):
    """Represents a doctor that patients can book."""
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    name = Column(String)
    specialty = Column(String, nullable=False, index=True)
    hospital_id = Column(Integer, ForeignKey("hospitals.id"), nullable=True, index=True)
    appointment_duration = Column(Integer, nullable=False, default=config.DEFAULT_APPOINTMENT_DURATION_MINUTES)
    is_available = Column(Boolean, nullable=False, default=True)

    user = relationship("User")
    work_schedule = relationship(
        "WorkSchedule",
        back_populates="doctor",
        cascade="all, delete-orphan",
        order_by="WorkSchedule.id",
        lazy="selectin",
    )

    def schedule_for(self, weekday: Weekday) -> "WorkSchedule | None":
        for entry in self.work_schedule:
            if entry.weekday == weekday:
                return entry
        return None


class WorkSchedule(Base):
    """One recurring weekday window of a doctor's working hours."""
    __tablename__ = "work_schedules"
    __table_args__ = (UniqueConstraint("doctor_id", "weekday", name="uq_work_schedules_doctor_weekday"),)

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False)
    weekday = Column(
        Enum(Weekday, name="weekday", values_callable=lambda members: [member.value for member in members]),
        nullable=False,
    )
    from_time = Column(String(5), nullable=False)
    to_time = Column(String(5), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)

    doctor = relationship("Doctor", back_populates="work_schedule")
