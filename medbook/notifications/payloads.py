from dataclasses import dataclass


@dataclass(frozen=True)
class BookingConfirmation:
    to: str
    patient_name: str
    doctor_name: str
    appointment_type: str
    date: str
    time: str
    duration_minutes: int


@dataclass(frozen=True)
class CancellationNotice:
    to: str
    patient_name: str
    doctor_name: str
    appointment_date: str
    appointment_time: str
    reason: str
