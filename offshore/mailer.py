"""
offshore.mailer
===============

Outbound email with a first-class simulation mode.

When ``RESEND_API_KEY`` is configured, messages are POSTed to the Resend HTTP
API. Without it the full message is written to the log and reported as a
successful *simulated* send, which is how local and test environments run.
:meth:`Mailer.send` never raises for configuration problems.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .models import EmailMessage, EmailResult
from .settings import settings

logger = logging.getLogger(__name__)


class Mailer:
    """
    Thin client over the Resend ``/emails`` endpoint.

    Parameters
    ----------
    api_key : str
        Resend API key; empty switches to simulation.
    sender : str
        Default ``From`` address.
    base_url : str
        API base URL.
    transport : httpx.AsyncBaseTransport | None
        Injected transport (tests use :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        api_key: str = "",
        sender: str = "no-reply@example.test",
        base_url: str = "https://api.resend.com",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.base_url = str(base_url).rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def simulate(self) -> bool:
        return not self.api_key

    def _preview(self, tag: str, msg: EmailMessage) -> None:
        logger.info(
            f"--- EMAIL ({tag}) ---\n"
            f"From: {msg.from_ or self.sender}\n"
            f"To: {', '.join(msg.recipients)}\n"
            f"Subject: {msg.subject}\n"
            + (f"Text: {msg.text}\n" if msg.text else "")
            + (f"HTML: {msg.html}\n" if msg.html else "")
            + "----------------------"
        )

    async def send(self, msg: EmailMessage) -> EmailResult:
        if not msg.recipients:
            logger.warning("Missing recipient; skipping send")
            return EmailResult(ok=False, simulated=self.simulate, id="skipped-no-recipient")

        if self.simulate:
            self._preview("simulated", msg)
            return EmailResult(ok=True, simulated=True, id="simulated")

        payload = {
            "from": msg.from_ or self.sender,
            "to": msg.recipients,
            "subject": msg.subject,
        }
        if msg.html:
            payload["html"] = msg.html
        if msg.text:
            payload["text"] = msg.text

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post("/emails", json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Email delivery failed for {msg.subject!r}: {e}")
            self._preview("failed", msg)
            return EmailResult(ok=False, simulated=False, id=None)

        logger.info(f"Email {msg.subject!r} delivered to {', '.join(msg.recipients)}")
        return EmailResult(ok=True, simulated=False, id=data.get("id"))


def default_mailer() -> Mailer:
    """Mailer configured from :data:`offshore.settings.settings`."""
    return Mailer(
        api_key=settings.resend_api_key,
        sender=settings.email_from,
        base_url=str(settings.resend_base_url),
        timeout=settings.mail_timeout,
    )


async def send_email(
    to,
    subject: str,
    html: Optional[str] = None,
    text: Optional[str] = None,
    from_: Optional[str] = None,
) -> EmailResult:
    """Convenience wrapper using the default mailer."""
    return await default_mailer().send(EmailMessage(to=to, subject=subject, html=html, text=text, from_=from_))
