"""Slot inventory: availability queries and the atomic claim/release pair."""

import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy import update
from sqlalchemy.orm import Session

from medbook.models.appointment import STATUS_CANCELLED, Appointment
from medbook.models.slot import Slot
from medbook.services.results import InvariantViolation, Result, slot_unavailable

logger = logging.getLogger(__name__)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    day_start = datetime.combine(day, time.min)
    return day_start, day_start + timedelta(days=1)


def get_slot(db: Session, slot_id: str) -> Slot | None:
    return db.get(Slot, slot_id)


def list_available(db: Session, doctor_id: str, day: date) -> list[Slot]:
    """Unbooked slots starting on ``day``, earliest first. Blocks are not applied here."""
    day_start, next_day = day_bounds(day)
    return db.query(Slot).filter(
        Slot.doctor_id == doctor_id,
        Slot.is_available.is_(True),
        Slot.start_time >= day_start,
        Slot.start_time < next_day,
    ).order_by(Slot.start_time.asc()).all()


def claim(db: Session, slot_id: str) -> Result[None]:
    # Single conditional UPDATE; the row count decides which concurrent claim wins.
    # The caller owns the transaction and must commit or roll back.
    outcome = db.execute(
        update(Slot)
        .where(Slot.id == slot_id, Slot.is_available.is_(True))
        .values(is_available=False)
        .execution_options(synchronize_session=False)
    )

    if outcome.rowcount == 0:
        logger.info('Claim on slot %s lost: already booked or unknown', slot_id)
        return slot_unavailable()
    if outcome.rowcount != 1:
        raise InvariantViolation(f'Claim matched {outcome.rowcount} rows for slot {slot_id}')

    return Result.success()


def release(db: Session, slot_id: str) -> None:
    """Mark a slot bookable again. Releasing an available slot is a no-op."""
    live_appointments = db.query(Appointment.id).filter(
        Appointment.slot_id == slot_id,
        Appointment.status != STATUS_CANCELLED,
    ).count()
    if live_appointments:
        raise InvariantViolation(
            f'Refusing to release slot {slot_id}: {live_appointments} live appointment(s) reference it'
        )

    outcome = db.execute(
        update(Slot)
        .where(Slot.id == slot_id)
        .values(is_available=True)
        .execution_options(synchronize_session=False)
    )
    if outcome.rowcount == 0:
        raise InvariantViolation(f'Cannot release unknown slot {slot_id}')
