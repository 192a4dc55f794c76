"""
Outbound email through Resend.
"""
from typing import Dict

import resend

from config import Settings
from errors import InternalError
from logger import get_logger

logger = get_logger("mailer")


class ResendMailer:
    def __init__(self, settings: Settings):
        self.api_key = settings.resend_api_key
        self.sender = settings.email_sender
        if self.api_key:
            # the SDK reads a module-level key; the app holds a single one
            resend.api_key = self.api_key

    def send(self, to: str, subject: str, text: str) -> str:
        """Send a plain-text email and return the provider message id."""
        if not self.api_key:
            raise InternalError("Server error", error="Email delivery is not configured")
        payload: Dict[str, object] = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "text": text,
        }

        try:
            response = resend.Emails.send(payload)
        except Exception as exc:
            logger.error("Resend rejected email to %s: %s", to, exc)
            raise InternalError("Server error", error=str(exc))

        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        if not message_id:
            raise InternalError("Server error", error=str(response))
        logger.info("Sent '%s' email to %s (%s)", subject, to, message_id)
        return message_id
