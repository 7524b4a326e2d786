# spabook/modules/notifications/email.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Union

import resend

from spabook.core.config import settings
from spabook.core.exceptions import NotificationError

logger = logging.getLogger(__name__)

DEFAULT_FROM_NAME = settings.SPA_NAME


def sender_address(from_name: Optional[str] = None) -> str:
    """'"Bondusy Spa" <team@...>' style From header."""
    return f'"{from_name or DEFAULT_FROM_NAME}" <{settings.EMAIL_FROM_ADDRESS}>'


class EmailSender:
    """
    Sends transactional email through Resend.

    The SDK is synchronous, so the call runs in a worker thread and is
    bounded by EMAIL_TIMEOUT_SECONDS.
    """

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.timeout = timeout or settings.EMAIL_TIMEOUT_SECONDS

    async def send(
        self,
        to: Union[str, list[str]],
        subject: str,
        html: str,
        from_name: Optional[str] = None,
    ) -> dict:
        if not self.api_key:
            logger.error("No email service configured - RESEND_API_KEY missing")
            raise NotificationError("email_not_configured")

        recipients = [to] if isinstance(to, str) else to
        params = {
            "from": sender_address(from_name),
            "to": recipients,
            "subject": subject,
            "html": html,
        }
        resend.api_key = self.api_key
        try:
            logger.info("Sending email via Resend to %s", recipients)
            response = await asyncio.wait_for(
                asyncio.to_thread(resend.Emails.send, params),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Email to %s timed out after %ss", recipients, self.timeout)
            raise NotificationError("email_timeout") from exc
        except Exception as exc:
            logger.error("Email send error to %s: %s", recipients, exc)
            raise NotificationError("email_failed", message=f"Failed to send email: {exc}") from exc

        logger.info("Email sent via Resend: %s", response)
        return dict(response) if response else {}


_sender: EmailSender | None = None


def get_email_sender() -> EmailSender:
    global _sender
    if _sender is None:
        _sender = EmailSender()
    return _sender
