from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

from medbook.models.appointment import Appointment
from medbook.services import appointments
from medbook.services.results import ErrorCode

CONCURRENT_REQUESTS = 8


def test_concurrent_bookings_on_one_slot_have_exactly_one_winner(session_factory, clinic, slot_flag) -> None:
    slot_id = clinic.slot.id
    principals = [clinic.patient_a_principal, clinic.patient_b_principal] * (CONCURRENT_REQUESTS // 2)
    start_together = Barrier(CONCURRENT_REQUESTS)

    def attempt(principal):
        session = session_factory()
        try:
            start_together.wait()
            result = appointments.book_slot(session, principal, slot_id)
            return result.ok, result.error.code if result.error else None
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=CONCURRENT_REQUESTS) as pool:
        outcomes = list(pool.map(attempt, principals))

    winners = [outcome for outcome in outcomes if outcome[0]]
    losers = [code for ok, code in outcomes if not ok]
    assert len(winners) == 1
    assert losers == [ErrorCode.SLOT_UNAVAILABLE] * (CONCURRENT_REQUESTS - 1)

    check = session_factory()
    try:
        assert check.query(Appointment).filter(Appointment.slot_id == slot_id).count() == 1
    finally:
        check.close()
    assert slot_flag(slot_id) is False
