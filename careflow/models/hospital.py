"""Hospital model definitions."""

from sqlalchemy import Column, Integer, String
from careflow.database import Base


class Hospital(Base):
    """Represents a hospital that doctors practise at."""
    __tablename__ = "hospitals"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
