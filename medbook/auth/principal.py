from dataclasses import dataclass

from medbook.models.user import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT


@dataclass(frozen=True)
class Principal:
    """Authenticated caller with its patient/doctor profile ids resolved up front."""

    user_id: str
    role: str
    patient_id: str | None = None
    doctor_id: str | None = None

    @property
    def is_patient(self) -> bool:
        return self.role == ROLE_PATIENT

    @property
    def is_doctor(self) -> bool:
        return self.role == ROLE_DOCTOR

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
