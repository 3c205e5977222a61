"""Fire-and-forget delivery of booking and cancellation mail.

Each notify call hands the send to a worker thread and returns a Future that
resolves to ``True`` when the mail went out and ``False`` otherwise. Failures
are logged in the worker; nothing is raised back to the booking code.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Protocol

from medbook.notifications.mailer import NotificationFailure
from medbook.notifications.payloads import BookingConfirmation, CancellationNotice
from medbook.notifications.templates import render_booking_confirmation, render_cancellation_notice

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to: str, subject: str, html_content: str) -> None: ...


class NotificationDispatcher:
    def __init__(self, mailer: Mailer, max_workers: int = 2, enabled: bool = True):
        self.mailer = mailer
        self.enabled = enabled
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='notify')

    def notify_booked(self, payload: BookingConfirmation) -> Future:
        subject, html = render_booking_confirmation(payload)
        return self._submit(payload.to, subject, html)

    def notify_cancelled(self, payload: CancellationNotice) -> Future:
        subject, html = render_cancellation_notice(payload)
        return self._submit(payload.to, subject, html)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _submit(self, to: str, subject: str, html: str) -> Future:
        if not self.enabled:
            logger.info("Notifications disabled; not sending '%s' to %s", subject, to)
            skipped: Future = Future()
            skipped.set_result(False)
            return skipped

        return self._executor.submit(self._deliver, to, subject, html)

    def _deliver(self, to: str, subject: str, html: str) -> bool:
        try:
            self.mailer.send(to, subject, html)
        except NotificationFailure:
            logger.exception("Notification '%s' to %s failed", subject, to)
            return False
        except Exception:
            logger.exception("Unexpected error sending notification '%s' to %s", subject, to)
            return False
        return True
