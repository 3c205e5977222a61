"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, text
from medbook.database import Base, generate_id


STATUS_CONFIRMED = "confirmed"
STATUS_COMPLETED = "completed"
STATUS_NO_SHOW = "no_show"
STATUS_CANCELLED = "cancelled"

TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_NO_SHOW, STATUS_CANCELLED})
OUTCOME_STATUSES = frozenset({STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_NO_SHOW})


class Appointment(Base):
    """Represents a booking of exactly one slot."""
    __tablename__ = "appointments"
    __table_args__ = (
        # At most one live appointment per slot, enforced by the database as well.
        Index(
            "uq_appointments_live_slot",
            "slot_id",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(String(36), ForeignKey("doctors.id"), nullable=False, index=True)
    slot_id = Column(String(36), ForeignKey("slots.id"), nullable=False)
    appointment_type_id = Column(String(36), ForeignKey("appointment_types.id"))
    status = Column(String, nullable=False, default=STATUS_CONFIRMED)
    notes = Column(String)
    cancellation_reason = Column(String)
    cancelled_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
