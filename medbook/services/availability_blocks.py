"""Availability block index.

Blocks hide slots from availability queries without touching
``Slot.is_available``. Overlapping blocks are kept as separate rows.
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime, time

from sqlalchemy.orm import Session

from medbook.models.availability_block import AvailabilityBlock
from medbook.models.slot import Slot

BLOCK_DAY_START = time(0, 0, 0, 0)
BLOCK_DAY_END = time(23, 59, 59, 999000)


def normalize_block_range(start_date: date, end_date: date) -> tuple[datetime, datetime]:
    return datetime.combine(start_date, BLOCK_DAY_START), datetime.combine(end_date, BLOCK_DAY_END)


def covers(block: AvailabilityBlock, timestamp: datetime) -> bool:
    return block.start_time <= timestamp <= block.end_time


def list_blocks(db: Session, doctor_id: str) -> list[AvailabilityBlock]:
    return db.query(AvailabilityBlock).filter(
        AvailabilityBlock.doctor_id == doctor_id,
    ).order_by(AvailabilityBlock.start_time.desc()).all()


def is_blocked(db: Session, doctor_id: str, timestamp: datetime) -> bool:
    return db.query(AvailabilityBlock.id).filter(
        AvailabilityBlock.doctor_id == doctor_id,
        AvailabilityBlock.start_time <= timestamp,
        AvailabilityBlock.end_time >= timestamp,
    ).first() is not None


def filter_blocked(slots: Sequence[Slot], blocks: Iterable[AvailabilityBlock]) -> list[Slot]:
    blocks = list(blocks)
    return [
        slot for slot in slots
        if not any(block.doctor_id == slot.doctor_id and covers(block, slot.start_time) for block in blocks)
    ]


def filter_slots(db: Session, slots: Sequence[Slot]) -> list[Slot]:
    """Drop slots whose start falls inside a block, keeping input order."""
    if not slots:
        return []

    doctor_ids = {slot.doctor_id for slot in slots}
    blocks = db.query(AvailabilityBlock).filter(AvailabilityBlock.doctor_id.in_(doctor_ids)).all()
    if not blocks:
        return list(slots)

    return filter_blocked(slots, blocks)


def add_block(
    db: Session,
    doctor_id: str,
    start_date: date,
    end_date: date,
    reason: str | None = None,
) -> AvailabilityBlock:
    start_time, end_time = normalize_block_range(start_date, end_date)
    block = AvailabilityBlock(
        doctor_id=doctor_id,
        start_time=start_time,
        end_time=end_time,
        reason=reason,
    )
    db.add(block)
    db.flush()
    return block
