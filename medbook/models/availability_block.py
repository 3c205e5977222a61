"""Availability block model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from medbook.database import Base, generate_id


class AvailabilityBlock(Base):
    """Doctor-declared exclusion window, inclusive at both ends. Append-only."""
    __tablename__ = "availability_blocks"
    __table_args__ = (
        Index("idx_availability_blocks_doctor", "doctor_id", "start_time"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    doctor_id = Column(String(36), ForeignKey("doctors.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    reason = Column(String)
