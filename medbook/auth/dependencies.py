import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from medbook.auth import jwt_handler
from medbook.auth.principal import Principal
from medbook.core.config import JwtSettings
from medbook.database import get_db
from medbook.models.doctor import Doctor
from medbook.models.patient import Patient
from medbook.models.user import ROLE_DOCTOR, ROLE_PATIENT, User

security = HTTPBearer()


def get_jwt_settings(request: Request) -> JwtSettings:
    return request.app.state.jwt_settings


def get_dispatcher(request: Request):
    return getattr(request.app.state, "dispatcher", None)


def resolve_principal(db: Session, user_id: str) -> Principal | None:
    """Load the user and its patient/doctor profile once for the whole request."""
    user = db.get(User, user_id)
    if user is None:
        return None

    patient_id = None
    doctor_id = None
    if user.role == ROLE_PATIENT:
        patient_id = db.query(Patient.id).filter(Patient.user_id == user.id).scalar()
    elif user.role == ROLE_DOCTOR:
        doctor_id = db.query(Doctor.id).filter(Doctor.user_id == user.id).scalar()

    return Principal(user_id=user.id, role=user.role, patient_id=patient_id, doctor_id=doctor_id)


def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: JwtSettings = Depends(get_jwt_settings),
    db: Session = Depends(get_db),
) -> Principal:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token, settings)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    principal = resolve_principal(db, user_id)
    if principal is None:
        raise HTTPException(status_code=401, detail="User not found")
    return principal
