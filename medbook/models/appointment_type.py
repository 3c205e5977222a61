"""Appointment type model definitions."""

from sqlalchemy import Column, Integer, String
from medbook.database import Base, generate_id


DEFAULT_DURATION_MINUTES = 30


class AppointmentType(Base):
    """Named kind of visit with its nominal length."""
    __tablename__ = "appointment_types"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=DEFAULT_DURATION_MINUTES)
