import os
from concurrent.futures import Future
from datetime import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from medbook.auth.principal import Principal  # noqa: E402
from medbook.database import Base, build_engine  # noqa: E402
from medbook.models import appointment, availability_block  # noqa: E402,F401
from medbook.models.appointment_type import AppointmentType  # noqa: E402
from medbook.models.doctor import Doctor  # noqa: E402
from medbook.models.patient import Patient  # noqa: E402
from medbook.models.slot import Slot  # noqa: E402
from medbook.models.user import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT, User  # noqa: E402


class RecordingDispatcher:
    """Stands in for the mail dispatcher and keeps every payload it is handed."""

    def __init__(self):
        self.booked = []
        self.cancelled = []

    def _done(self) -> Future:
        future: Future = Future()
        future.set_result(True)
        return future

    def notify_booked(self, payload) -> Future:
        self.booked.append(payload)
        return self._done()

    def notify_cancelled(self, payload) -> Future:
        self.cancelled.append(payload)
        return self._done()


@pytest.fixture
def db_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'booking.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def clinic(db):
    """Doctor D with three slots, two patients, a second doctor and an admin."""
    doctor_user = User(email='doctor1@clinic.com', role=ROLE_DOCTOR)
    other_doctor_user = User(email='doctor2@clinic.com', role=ROLE_DOCTOR)
    patient_a_user = User(email='alice@example.com', role=ROLE_PATIENT)
    patient_b_user = User(email='bob@example.com', role=ROLE_PATIENT)
    admin_user = User(email='admin@medicalbooking.com', role=ROLE_ADMIN)
    db.add_all([doctor_user, other_doctor_user, patient_a_user, patient_b_user, admin_user])
    db.flush()

    doctor = Doctor(user_id=doctor_user.id, first_name='Sarah', last_name='Johnson', title='Dr.')
    other_doctor = Doctor(user_id=other_doctor_user.id, first_name='Michael', last_name='Chen', title='Dr.')
    patient_a = Patient(user_id=patient_a_user.id, first_name='Alice', last_name='Anders')
    patient_b = Patient(user_id=patient_b_user.id, first_name='Bob', last_name='Baker')
    consultation = AppointmentType(name='Consultation', duration_minutes=30)
    db.add_all([doctor, other_doctor, patient_a, patient_b, consultation])
    db.flush()

    slot = Slot(
        doctor_id=doctor.id,
        start_time=datetime(2024, 6, 1, 9, 0),
        end_time=datetime(2024, 6, 1, 9, 30),
    )
    later_slot = Slot(
        doctor_id=doctor.id,
        start_time=datetime(2024, 6, 1, 10, 0),
        end_time=datetime(2024, 6, 1, 10, 30),
    )
    next_week_slot = Slot(
        doctor_id=doctor.id,
        start_time=datetime(2024, 6, 8, 9, 0),
        end_time=datetime(2024, 6, 8, 9, 30),
    )
    other_doctor_slot = Slot(
        doctor_id=other_doctor.id,
        start_time=datetime(2024, 6, 1, 9, 0),
        end_time=datetime(2024, 6, 1, 9, 30),
    )
    db.add_all([slot, later_slot, next_week_slot, other_doctor_slot])
    db.commit()

    return SimpleNamespace(
        doctor=doctor,
        other_doctor=other_doctor,
        patient_a=patient_a,
        patient_b=patient_b,
        consultation=consultation,
        slot=slot,
        later_slot=later_slot,
        next_week_slot=next_week_slot,
        other_doctor_slot=other_doctor_slot,
        doctor_principal=Principal(user_id=doctor_user.id, role=ROLE_DOCTOR, doctor_id=doctor.id),
        other_doctor_principal=Principal(
            user_id=other_doctor_user.id, role=ROLE_DOCTOR, doctor_id=other_doctor.id,
        ),
        patient_a_principal=Principal(user_id=patient_a_user.id, role=ROLE_PATIENT, patient_id=patient_a.id),
        patient_b_principal=Principal(user_id=patient_b_user.id, role=ROLE_PATIENT, patient_id=patient_b.id),
        admin_principal=Principal(user_id=admin_user.id, role=ROLE_ADMIN),
    )


@pytest.fixture
def slot_flag(db):
    """Read a slot's stored availability flag, bypassing the identity map."""
    def read(slot_id: str) -> bool:
        db.expire_all()
        return db.get(Slot, slot_id).is_available

    return read
