"""Slot model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, String
from medbook.database import Base, generate_id


class Slot(Base):
    """A bookable interval on one doctor's calendar.

    ``is_available`` means "not yet booked". Availability blocks never touch it;
    only the appointment lifecycle flips it, through the claim/release primitives.
    """
    __tablename__ = "slots"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_slots_start_before_end"),
        Index("idx_slots_doctor_start", "doctor_id", "start_time"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    doctor_id = Column(String(36), ForeignKey("doctors.id"), nullable=False)
    appointment_type_id = Column(String(36), ForeignKey("appointment_types.id"))
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
