"""User model definitions."""

from sqlalchemy import Column, Integer, String
from careflow.database import Base


class User(Base):
    """Represents an authenticated principal (patient, doctor or admin)."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    name = Column(String)
    phone_number = Column(String)
    role = Column(String, default="patient")  # patient/doctor/admin
