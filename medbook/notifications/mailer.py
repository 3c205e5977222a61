import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from medbook.core.config import MailSettings

logger = logging.getLogger(__name__)


class NotificationFailure(Exception):
    """Delivery of a notification failed. Never surfaced to booking callers."""


class SmtpMailer:
    def __init__(self, settings: MailSettings):
        self.settings = settings

    def build_message(self, to: str, subject: str, html_content: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.settings.sender
        msg["To"] = to
        msg.attach(MIMEText(html_content, "html"))
        return msg

    def send(self, to: str, subject: str, html_content: str) -> None:
        msg = self.build_message(to, subject, html_content)
        try:
            with smtplib.SMTP(
                self.settings.host,
                self.settings.port,
                timeout=self.settings.timeout_seconds,
            ) as server:
                if self.settings.use_tls:
                    server.starttls()
                if self.settings.username:
                    server.login(self.settings.username, self.settings.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationFailure(f"Failed to send '{subject}' to {to}: {exc}") from exc

        logger.info("Sent '%s' to %s", subject, to)
