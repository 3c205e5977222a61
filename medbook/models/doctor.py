"""Doctor directory model."""

from sqlalchemy import Column, ForeignKey, String
from medbook.database import Base, generate_id


class Doctor(Base):
    """Practitioner profile; read-only reference data for the booking engine."""
    __tablename__ = "doctors"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    title = Column(String)
    specialty = Column(String)
