"""Read-only lookups against directory data (doctors, patients, appointment types)."""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from medbook.models.appointment_type import AppointmentType
from medbook.models.doctor import Doctor
from medbook.models.patient import Patient
from medbook.models.user import User


@dataclass(frozen=True)
class PatientContact:
    name: str
    email: str | None


def doctor_exists(db: Session, doctor_id: str) -> bool:
    return db.query(Doctor.id).filter(Doctor.id == doctor_id).first() is not None


def appointment_type(db: Session, appointment_type_id: str | None) -> AppointmentType | None:
    if not appointment_type_id:
        return None
    return db.get(AppointmentType, appointment_type_id)


def doctor_display_name(doctor: Doctor | None) -> str:
    if doctor is None:
        return 'Doctor'
    return f"{doctor.title or ''} {doctor.first_name} {doctor.last_name}".strip()


def patient_display_name(patient: Patient | None) -> str:
    if patient is None:
        return 'Patient'
    return f"{patient.first_name} {patient.last_name}"


def patient_contact(db: Session, patient_id: str) -> PatientContact | None:
    row = db.query(Patient, User.email).outerjoin(User, Patient.user_id == User.id).filter(
        Patient.id == patient_id,
    ).first()
    if row is None:
        return None

    patient, email = row
    return PatientContact(name=patient_display_name(patient), email=email)
