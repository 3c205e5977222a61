from threading import Lock
from uuid import uuid4

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from medbook.core import config


def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 15}
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_booking_schema_checked = False


def generate_id() -> str:
    return str(uuid4())


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_booking_schema(bind: Engine | None = None) -> None:
    """Bring an existing database up to the current booking schema.

    Older databases predate the cancellation columns and the live-slot index;
    tables created through ``Base.metadata.create_all`` already have both.
    """
    global _booking_schema_checked

    target = bind or engine
    if bind is None and _booking_schema_checked:
        return

    with _schema_lock:
        if bind is None and _booking_schema_checked:
            return

        inspector = inspect(target)

        if 'appointments' not in inspector.get_table_names():
            if bind is None:
                _booking_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('cancellation_reason', 'ALTER TABLE appointments ADD COLUMN cancellation_reason VARCHAR'),
            ('cancelled_at', 'ALTER TABLE appointments ADD COLUMN cancelled_at TIMESTAMP'),
        ]

        with target.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    "CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_live_slot "
                    "ON appointments(slot_id) WHERE status != 'cancelled'"
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_slots_doctor_start ON slots(doctor_id, start_time)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_availability_blocks_doctor ON availability_blocks(doctor_id, start_time)')
            )

        if bind is None:
            _booking_schema_checked = True
