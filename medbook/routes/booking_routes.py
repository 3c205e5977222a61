from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medbook.auth.dependencies import get_current_principal, get_dispatcher
from medbook.auth.principal import Principal
from medbook.database import ensure_booking_schema, get_db
from medbook.services import appointments
from medbook.services.results import ErrorCode, Result

router = APIRouter(tags=['booking'])

ERROR_STATUS_CODES = {
    ErrorCode.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.SLOT_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_TRANSITION: status.HTTP_400_BAD_REQUEST,
}


class SlotResponse(BaseModel):
    id: str
    doctor_id: str
    appointment_type_id: str | None = None
    start_time: datetime
    end_time: datetime
    is_available: bool

    class Config:
        from_attributes = True


class CreateAppointmentRequest(BaseModel):
    slot_id: str
    appointment_type_id: str | None = None
    notes: str | None = None

    @field_validator('slot_id')
    @classmethod
    def validate_slot_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('slot_id is required')
        return normalized


class UpdateAppointmentRequest(BaseModel):
    status: str
    cancellation_reason: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        return value.strip().lower()


class AppointmentResponse(BaseModel):
    id: str
    status: str
    slot_id: str
    doctor_id: str
    patient_id: str
    doctor_name: str
    patient_name: str
    appointment_type_id: str | None = None
    appointment_type_name: str | None = None
    start_time: datetime
    end_time: datetime
    notes: str | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class CreateBlockRequest(BaseModel):
    start_date: date
    end_date: date
    reason: str | None = None


class BlockResponse(BaseModel):
    id: str
    doctor_id: str
    start_time: datetime
    end_time: datetime
    reason: str | None = None

    class Config:
        from_attributes = True


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail='Database unavailable. Verify DATABASE_URL and database credentials.',
    )


def ensure_database_ready() -> None:
    try:
        ensure_booking_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def unwrap(result: Result):
    if result.ok:
        return result.value
    raise HTTPException(status_code=ERROR_STATUS_CODES[result.error.code], detail=result.error.message)


@router.get('/slots', response_model=list[SlotResponse], dependencies=[Depends(get_current_principal)])
def list_available_slots(
    doctor_id: str | None = Query(default=None),
    slot_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return unwrap(appointments.get_available_slots(db, doctor_id, slot_date))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: CreateAppointmentRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
):
    ensure_database_ready()

    try:
        return unwrap(
            appointments.book_slot(
                db,
                principal,
                data.slot_id,
                appointment_type_id=data.appointment_type_id,
                notes=data.notes,
                dispatcher=dispatcher,
            )
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/appointments', response_model=list[AppointmentResponse])
def list_my_appointments(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return unwrap(appointments.list_appointments(db, principal))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.patch('/appointments/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    data: UpdateAppointmentRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
):
    ensure_database_ready()

    try:
        return unwrap(
            appointments.update_appointment(
                db,
                principal,
                appointment_id,
                data.status,
                cancellation_reason=data.cancellation_reason,
                dispatcher=dispatcher,
            )
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/doctor/today', response_model=list[AppointmentResponse])
def list_today_appointments(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return unwrap(appointments.get_today_appointments(db, principal))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/doctor/calendar', response_model=list[AppointmentResponse])
def list_calendar_appointments(
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return unwrap(appointments.get_calendar(db, principal, from_date, to_date))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/doctor/blocks', response_model=BlockResponse, status_code=status.HTTP_201_CREATED)
def create_availability_block(
    data: CreateBlockRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return unwrap(
            appointments.add_availability_block(db, principal, data.start_date, data.end_date, data.reason)
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/doctor/blocks', response_model=list[BlockResponse])
def list_availability_blocks(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return unwrap(appointments.list_availability_blocks(db, principal))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
