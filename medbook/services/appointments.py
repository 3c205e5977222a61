"""Appointment lifecycle: booking, cancellation, outcomes and the read views.

This module is the only writer of ``Appointment.status`` and, through
``slot_inventory.claim``/``release``, of ``Slot.is_available``. A slot is
claimed with a conditional update before the appointment row is inserted, and
released in the same transaction that marks the appointment cancelled.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from medbook.auth.principal import Principal
from medbook.core import config
from medbook.models.appointment import (
    OUTCOME_STATUSES,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    TERMINAL_STATUSES,
    Appointment,
)
from medbook.models.appointment_type import DEFAULT_DURATION_MINUTES, AppointmentType
from medbook.models.availability_block import AvailabilityBlock
from medbook.models.doctor import Doctor
from medbook.models.patient import Patient
from medbook.models.slot import Slot
from medbook.notifications.payloads import BookingConfirmation, CancellationNotice
from medbook.services import availability_blocks, directory, slot_inventory
from medbook.services.results import (
    InvariantViolation,
    Result,
    forbidden,
    invalid_transition,
    not_found,
    validation_error,
)

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 600
DATE_DISPLAY_FORMAT = '%A, %B %d, %Y'
TIME_DISPLAY_FORMAT = '%I:%M %p'


@dataclass(frozen=True)
class AppointmentView:
    id: str
    status: str
    slot_id: str
    patient_id: str
    doctor_id: str
    start_time: datetime
    end_time: datetime
    created_at: datetime
    doctor_name: str
    patient_name: str
    appointment_type_id: str | None = None
    appointment_type_name: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None


def _appointment_rows(db: Session):
    return db.query(Appointment, Slot, Doctor, Patient, AppointmentType).join(
        Slot, Appointment.slot_id == Slot.id,
    ).join(
        Doctor, Appointment.doctor_id == Doctor.id,
    ).join(
        Patient, Appointment.patient_id == Patient.id,
    ).outerjoin(
        AppointmentType, Appointment.appointment_type_id == AppointmentType.id,
    )


def _to_view(row) -> AppointmentView:
    appointment, slot, doctor, patient, appointment_type = row
    return AppointmentView(
        id=appointment.id,
        status=appointment.status,
        slot_id=appointment.slot_id,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        start_time=slot.start_time,
        end_time=slot.end_time,
        created_at=appointment.created_at,
        doctor_name=directory.doctor_display_name(doctor),
        patient_name=directory.patient_display_name(patient),
        appointment_type_id=appointment.appointment_type_id,
        appointment_type_name=appointment_type.name if appointment_type else None,
        notes=appointment.notes,
        cancellation_reason=appointment.cancellation_reason,
        cancelled_at=appointment.cancelled_at,
    )


def get_appointment_view(db: Session, appointment_id: str) -> AppointmentView | None:
    row = _appointment_rows(db).filter(Appointment.id == appointment_id).first()
    return _to_view(row) if row else None


def _normalize_notes(notes: str | None) -> Result[str | None]:
    if notes is None:
        return Result.success(None)

    normalized = notes.strip()
    if not normalized:
        return Result.success(None)
    if len(normalized) > MAX_NOTES_LENGTH:
        return validation_error(f'Notes must be {MAX_NOTES_LENGTH} characters or fewer.')

    return Result.success(normalized)


def get_available_slots(db: Session, doctor_id: str | None, day: date | None) -> Result[list[Slot]]:
    if not doctor_id or day is None:
        return validation_error('doctor_id and date are required')
    if not directory.doctor_exists(db, doctor_id):
        return not_found('Doctor not found')

    slots = slot_inventory.list_available(db, doctor_id, day)
    return Result.success(availability_blocks.filter_slots(db, slots))


def book_slot(
    db: Session,
    principal: Principal,
    slot_id: str | None,
    appointment_type_id: str | None = None,
    notes: str | None = None,
    dispatcher=None,
) -> Result[AppointmentView]:
    if not principal.is_patient:
        return forbidden('Only patients can book appointments')
    if principal.patient_id is None:
        return not_found('Patient not found')
    if not slot_id:
        return validation_error('slot_id is required')

    notes_result = _normalize_notes(notes)
    if not notes_result.ok:
        return notes_result
    if appointment_type_id and directory.appointment_type(db, appointment_type_id) is None:
        return validation_error('Unknown appointment type')

    claimed = slot_inventory.claim(db, slot_id)
    if not claimed.ok:
        db.rollback()
        return claimed

    slot = slot_inventory.get_slot(db, slot_id)
    if slot is None:
        raise InvariantViolation(f'Slot {slot_id} was claimed but cannot be read back')

    appointment = Appointment(
        patient_id=principal.patient_id,
        doctor_id=slot.doctor_id,
        slot_id=slot.id,
        appointment_type_id=appointment_type_id or None,
        status=STATUS_CONFIRMED,
        notes=notes_result.value,
        created_at=datetime.now(),
    )
    db.add(appointment)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        # The claim succeeded, so a live appointment on this slot means the
        # availability flag and the appointment table disagreed.
        raise InvariantViolation(f'Slot {slot_id} was available but already had a live appointment') from exc

    logger.info('Appointment %s booked on slot %s by patient %s', appointment.id, slot_id, principal.patient_id)

    view = get_appointment_view(db, appointment.id)
    _notify_booked(db, view, dispatcher)
    return Result.success(view)


def update_appointment(
    db: Session,
    principal: Principal,
    appointment_id: str,
    status: str | None,
    cancellation_reason: str | None = None,
    dispatcher=None,
) -> Result[AppointmentView]:
    if not status:
        return validation_error('status is required')
    if status != STATUS_CANCELLED and status not in OUTCOME_STATUSES:
        return validation_error(f'Unknown status: {status}')

    appointment = db.get(Appointment, appointment_id)
    if appointment is None:
        return not_found('Appointment not found')

    is_doctor = principal.is_doctor and principal.doctor_id is not None and appointment.doctor_id == principal.doctor_id
    is_patient = principal.is_patient and principal.patient_id is not None and appointment.patient_id == principal.patient_id
    if not (is_doctor or is_patient or principal.is_admin):
        return forbidden()

    if status == STATUS_CANCELLED:
        return _cancel(db, appointment, cancellation_reason, notify_patient=is_doctor, dispatcher=dispatcher)

    if not is_doctor:
        return forbidden("Only the appointment's doctor can record its outcome")
    return _mark_outcome(db, appointment, status)


def _transition(db: Session, appointment: Appointment, target: str, **values) -> bool:
    # Conditional on the status we read, so concurrent transitions on the same
    # appointment serialise on its row.
    outcome = db.execute(
        update(Appointment)
        .where(Appointment.id == appointment.id, Appointment.status == appointment.status)
        .values(status=target, **values)
        .execution_options(synchronize_session=False)
    )
    return outcome.rowcount == 1


def _cancel(
    db: Session,
    appointment: Appointment,
    reason: str | None,
    notify_patient: bool,
    dispatcher=None,
) -> Result[AppointmentView]:
    if appointment.status in TERMINAL_STATUSES:
        return invalid_transition(f'Appointment is already {appointment.status}')

    reason = reason.strip() if reason and reason.strip() else None
    if not _transition(db, appointment, STATUS_CANCELLED, cancellation_reason=reason, cancelled_at=datetime.now()):
        db.rollback()
        return invalid_transition('Appointment was updated concurrently')

    # Same transaction as the status write: both land or neither does.
    slot_inventory.release(db, appointment.slot_id)
    db.commit()
    db.refresh(appointment)

    logger.info('Appointment %s cancelled; slot %s released', appointment.id, appointment.slot_id)

    view = get_appointment_view(db, appointment.id)
    if notify_patient and reason:
        _notify_cancelled(db, view, dispatcher)
    return Result.success(view)


def _mark_outcome(db: Session, appointment: Appointment, status: str) -> Result[AppointmentView]:
    if appointment.status in TERMINAL_STATUSES:
        return invalid_transition(f'Appointment is already {appointment.status}')

    if status != appointment.status:
        if not _transition(db, appointment, status):
            db.rollback()
            return invalid_transition('Appointment was updated concurrently')
        db.commit()
        db.refresh(appointment)
        logger.info('Appointment %s marked %s', appointment.id, status)

    return Result.success(get_appointment_view(db, appointment.id))


def list_appointments(db: Session, principal: Principal) -> Result[list[AppointmentView]]:
    query = _appointment_rows(db)
    if principal.is_patient and principal.patient_id:
        query = query.filter(Appointment.patient_id == principal.patient_id)
    elif principal.is_doctor and principal.doctor_id:
        query = query.filter(Appointment.doctor_id == principal.doctor_id)
    else:
        return Result.success([])

    return Result.success([_to_view(row) for row in query.order_by(Slot.start_time.desc()).all()])


def get_today_appointments(
    db: Session,
    principal: Principal,
    today: date | None = None,
) -> Result[list[AppointmentView]]:
    if not principal.is_doctor:
        return forbidden('Only doctors can view their daily schedule')
    if principal.doctor_id is None:
        return Result.success([])

    day_start, next_day = slot_inventory.day_bounds(today or date.today())
    rows = _appointment_rows(db).filter(
        Appointment.doctor_id == principal.doctor_id,
        Appointment.status == STATUS_CONFIRMED,
        Slot.start_time >= day_start,
        Slot.start_time < next_day,
    ).order_by(Slot.start_time.asc()).all()
    return Result.success([_to_view(row) for row in rows])


def get_calendar(
    db: Session,
    principal: Principal,
    from_date: date | None = None,
    to_date: date | None = None,
) -> Result[list[AppointmentView]]:
    if not principal.is_doctor:
        return forbidden('Only doctors can view the calendar')

    from_date = from_date or date.today()
    to_date = to_date or from_date + timedelta(days=config.CALENDAR_DEFAULT_DAYS)
    if from_date > to_date:
        return validation_error('from_date must not be after to_date')
    if principal.doctor_id is None:
        return Result.success([])

    range_start, _ = slot_inventory.day_bounds(from_date)
    _, range_end = slot_inventory.day_bounds(to_date)
    rows = _appointment_rows(db).filter(
        Appointment.doctor_id == principal.doctor_id,
        Slot.start_time >= range_start,
        Slot.start_time < range_end,
    ).order_by(Slot.start_time.asc()).all()
    return Result.success([_to_view(row) for row in rows])


def add_availability_block(
    db: Session,
    principal: Principal,
    start_date: date | None,
    end_date: date | None,
    reason: str | None = None,
) -> Result[AvailabilityBlock]:
    if not principal.is_doctor:
        return forbidden('Only doctors can block their availability')
    if start_date is None or end_date is None:
        return validation_error('start_date and end_date are required')
    if end_date < start_date:
        return validation_error('end_date must not be before start_date')
    if principal.doctor_id is None:
        return not_found('Doctor not found')

    reason = reason.strip() if reason and reason.strip() else None
    block = availability_blocks.add_block(db, principal.doctor_id, start_date, end_date, reason)
    db.commit()
    db.refresh(block)

    logger.info('Doctor %s blocked %s through %s', principal.doctor_id, start_date, end_date)
    return Result.success(block)


def list_availability_blocks(db: Session, principal: Principal) -> Result[list[AvailabilityBlock]]:
    if not principal.is_doctor:
        return forbidden('Only doctors can view their blocked dates')
    if principal.doctor_id is None:
        return Result.success([])
    return Result.success(availability_blocks.list_blocks(db, principal.doctor_id))


def _notify_booked(db: Session, view: AppointmentView, dispatcher) -> None:
    if dispatcher is None:
        return

    try:
        contact = directory.patient_contact(db, view.patient_id)
        appointment_type = directory.appointment_type(db, view.appointment_type_id)
    except SQLAlchemyError:
        logger.exception('Could not load booking confirmation details for appointment %s', view.id)
        return

    if contact is None or not contact.email:
        logger.warning('No email on file for patient %s; skipping booking confirmation', view.patient_id)
        return

    payload = BookingConfirmation(
        to=contact.email,
        patient_name=contact.name,
        doctor_name=view.doctor_name,
        appointment_type=appointment_type.name if appointment_type else 'Appointment',
        date=view.start_time.strftime(DATE_DISPLAY_FORMAT),
        time=view.start_time.strftime(TIME_DISPLAY_FORMAT),
        duration_minutes=appointment_type.duration_minutes if appointment_type else DEFAULT_DURATION_MINUTES,
    )
    try:
        dispatcher.notify_booked(payload)
    except Exception:
        logger.exception('Could not dispatch booking confirmation for appointment %s', view.id)


def _notify_cancelled(db: Session, view: AppointmentView, dispatcher) -> None:
    if dispatcher is None:
        return

    try:
        contact = directory.patient_contact(db, view.patient_id)
    except SQLAlchemyError:
        logger.exception('Could not load cancellation notice details for appointment %s', view.id)
        return

    if contact is None or not contact.email:
        logger.warning('No email on file for patient %s; skipping cancellation notice', view.patient_id)
        return

    payload = CancellationNotice(
        to=contact.email,
        patient_name=contact.name,
        doctor_name=view.doctor_name,
        appointment_date=view.start_time.strftime(DATE_DISPLAY_FORMAT),
        appointment_time=view.start_time.strftime(TIME_DISPLAY_FORMAT),
        reason=view.cancellation_reason or '',
    )
    try:
        dispatcher.notify_cancelled(payload)
    except Exception:
        logger.exception('Could not dispatch cancellation notice for appointment %s', view.id)
