"""Create bookable slots for a doctor over the coming days.

Usage:
    python -m medbook.provision_slots DOCTOR_ID [--days 7] [--interval 30]
"""
import argparse
import sys
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from medbook.database import Base, SessionLocal, engine
from medbook.models import appointment, appointment_type, availability_block, doctor, patient, slot, user  # noqa: F401
from medbook.models.slot import Slot

OPEN_HOUR = 9
CLOSE_HOUR = 17
DEFAULT_INTERVAL_MINUTES = 30
DEFAULT_DAYS = 7


def iterate_day_slots(day: date, interval_minutes: int = DEFAULT_INTERVAL_MINUTES) -> list[tuple[datetime, datetime]]:
    bounds: list[tuple[datetime, datetime]] = []
    current = datetime.combine(day, time(OPEN_HOUR, 0))
    day_close = datetime.combine(day, time(CLOSE_HOUR, 0))

    while current + timedelta(minutes=interval_minutes) <= day_close:
        end = current + timedelta(minutes=interval_minutes)
        bounds.append((current, end))
        current = end

    return bounds


def provision_slots(
    db: Session,
    doctor_id: str,
    first_day: date,
    days: int = DEFAULT_DAYS,
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
    appointment_type_id: str | None = None,
) -> int:
    """Insert missing slots; existing starts for the doctor are left untouched."""
    last_day = first_day + timedelta(days=days)
    existing_starts = {
        start for (start,) in db.query(Slot.start_time).filter(
            Slot.doctor_id == doctor_id,
            Slot.start_time >= datetime.combine(first_day, time.min),
            Slot.start_time < datetime.combine(last_day, time.min),
        ).all()
    }

    created = 0
    for offset in range(days):
        for start, end in iterate_day_slots(first_day + timedelta(days=offset), interval_minutes):
            if start in existing_starts:
                continue
            db.add(Slot(
                doctor_id=doctor_id,
                appointment_type_id=appointment_type_id,
                start_time=start,
                end_time=end,
                is_available=True,
            ))
            created += 1

    db.commit()
    return created


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument('doctor_id')
    parser.add_argument('--days', type=int, default=DEFAULT_DAYS)
    parser.add_argument('--interval', type=int, default=DEFAULT_INTERVAL_MINUTES)
    parser.add_argument('--appointment-type-id', default=None)
    args = parser.parse_args(argv)

    if args.interval <= 0 or args.days <= 0:
        print('--days and --interval must be positive', file=sys.stderr)
        sys.exit(1)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = provision_slots(
            db,
            args.doctor_id,
            date.today(),
            days=args.days,
            interval_minutes=args.interval,
            appointment_type_id=args.appointment_type_id,
        )
    finally:
        db.close()
    print(f'Created {created} slots for doctor {args.doctor_id}')


if __name__ == '__main__':
    main()
