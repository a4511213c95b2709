"""
Email dispatch for one-time codes.

Implementations:
- LoggingEmailDispatcher: writes the code to the log (development)
- SendGridEmailDispatcher: sends via the SendGrid v3 API (production)

Dispatch is fire-and-report: a failed send raises MailDeliveryError and is
never retried here.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from ..config import MailConfig
from .exceptions import MailDeliveryError
from .masking import mask_email

logger = logging.getLogger(__name__)

SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"
SUBJECT = "Your Time Capsule verification code"


def render_body(code: str) -> str:
    return (
        f"Your verification code is {code}.\n\n"
        "It can be used once. If you did not request it, ignore this email."
    )


class EmailDispatcher(ABC):
    """Abstract base class for code delivery."""

    @abstractmethod
    def send(self, to_address: str, code: str) -> None:
        """
        Deliver a code to an email address.

        Raises:
            MailDeliveryError: If the message could not be handed off
        """
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return provider name for logging."""
        pass


class LoggingEmailDispatcher(EmailDispatcher):
    """
    Dispatcher that logs the code instead of sending it.

    Use in development. Never use in production.
    """

    def send(self, to_address: str, code: str) -> None:
        logger.info(f"[DEV MAIL] One-time code for {mask_email(to_address)}: {code}")

    @property
    def provider_name(self) -> str:
        return "log"


class SendGridEmailDispatcher(EmailDispatcher):
    """Dispatcher using the SendGrid API."""

    def __init__(
        self,
        api_key: str,
        from_address: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("SendGrid dispatcher requires an API key")
        self.api_key = api_key
        self.from_address = from_address
        self.timeout = timeout
        self.client = client or httpx.Client(timeout=timeout)

    def send(self, to_address: str, code: str) -> None:
        try:
            response = self.client.post(
                SENDGRID_API_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "personalizations": [{"to": [{"email": to_address}]}],
                    "from": {"email": self.from_address},
                    "subject": SUBJECT,
                    "content": [{"type": "text/plain", "value": render_body(code)}],
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to send code via SendGrid to {mask_email(to_address)}: {e}")
            raise MailDeliveryError(
                "Email could not be sent", operation="send", backend=self.provider_name
            ) from e

        if response.status_code not in (200, 202):
            logger.error(f"SendGrid API error: {response.status_code} {response.text[:100]}")
            raise MailDeliveryError(
                "Email could not be sent",
                operation="send",
                backend=self.provider_name,
                status_code=response.status_code,
            )

        logger.info(f"Code sent via SendGrid to {mask_email(to_address)}")

    @property
    def provider_name(self) -> str:
        return "sendgrid"


def create_email_dispatcher(config: MailConfig) -> EmailDispatcher:
    """Factory function to create the configured dispatcher."""
    if config.provider == "log":
        return LoggingEmailDispatcher()
    elif config.provider == "sendgrid":
        return SendGridEmailDispatcher(
            api_key=config.api_key or "",
            from_address=config.from_address,
            timeout=config.timeout_seconds,
        )
    else:
        raise ValueError(f"Unknown mail provider: {config.provider}")
