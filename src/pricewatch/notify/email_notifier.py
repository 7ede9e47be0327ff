"""SMTP email notifier.

smtplib is blocking, so each send runs in a worker thread via
asyncio.to_thread and opens its own SMTP session.
"""

import asyncio
import smtplib
from email.message import EmailMessage

from pricewatch.config import NotifierSettings
from pricewatch.logging import get_logger
from pricewatch.notify.notifier import Notifier

logger = get_logger(__name__)


class EmailNotifier(Notifier):
    """Sends plain-text alert emails through an SMTP relay."""

    def __init__(self, settings: NotifierSettings) -> None:
        self._settings = settings

    def build_message(self, recipient: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._settings.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        return message

    async def send(self, recipient: str, subject: str, body: str) -> None:
        message = self.build_message(recipient, subject, body)
        await asyncio.to_thread(self._deliver, message)
        logger.info("email_sent", recipient=recipient, subject=subject)

    def _deliver(self, message: EmailMessage) -> None:
        settings = self._settings
        with smtplib.SMTP(settings.host, settings.port, timeout=settings.send_timeout) as smtp:
            if settings.starttls:
                smtp.starttls()
            if settings.username:
                smtp.login(settings.username, settings.password.get_secret_value())
            smtp.send_message(message)
