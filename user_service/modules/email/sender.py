"""
Email senders for password reset links.

HttpEmailSender posts to a transactional email API. LoggingEmailSender is
for local development and records only that a message was sent; the link
(which embeds the reset token) is never written to the log.
"""

import logging
from typing import Optional

import httpx

from ..auth.errors import DeliveryFailed

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Reset your password"


def render_reset_body(reset_link: str, ttl_minutes: Optional[int] = None) -> str:
    lines = [
        "We received a request to reset your password.",
        "",
        f"Use this link to choose a new password: {reset_link}",
        "",
    ]
    if ttl_minutes:
        lines.append(f"The link expires in {ttl_minutes} minutes and can be used once.")
    lines.append("If you did not request a reset, you can ignore this email.")
    return "\n".join(lines)


class HttpEmailSender:
    """
    Delivers mail through an HTTP email API.

    The API receives a JSON body with from/to/subject/text and an optional
    Bearer API key. Any transport error or non-2xx response is reported as
    DeliveryFailed.
    """

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str] = None,
        sender: str = "no-reply@localhost",
        timeout: float = 10.0,
        ttl_minutes: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        self.ttl_minutes = ttl_minutes
        self._client = client

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def send(self, address: str, reset_link: str) -> None:
        payload = {
            "from": self.sender,
            "to": address,
            "subject": RESET_SUBJECT,
            "text": render_reset_body(reset_link, self.ttl_minutes),
        }

        try:
            if self._client is not None:
                response = await self._client.post(
                    self.api_url, json=payload, headers=self._headers(), timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.api_url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            raise DeliveryFailed(f"Email API request failed: {type(e).__name__}") from e

        if response.status_code >= 300:
            raise DeliveryFailed(f"Email API returned {response.status_code}")

        logger.info(f"Reset email handed to email API for {address}")


class LoggingEmailSender:
    """Development sender that only logs the recipient."""

    def __init__(self):
        self.sent_to = []

    async def send(self, address: str, reset_link: str) -> None:
        self.sent_to.append(address)
        logger.info(f"[dev] Password reset email for {address} (link withheld from logs)")
