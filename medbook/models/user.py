"""User model definitions."""

from sqlalchemy import Column, String
from medbook.database import Base, generate_id


ROLE_PATIENT = "patient"
ROLE_DOCTOR = "doctor"
ROLE_ADMIN = "admin"


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String, unique=True, index=True)
    role = Column(String)  # patient/doctor/admin
