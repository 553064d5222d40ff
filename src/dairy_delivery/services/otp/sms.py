"""HTTP client for the SMS gateway."""

from __future__ import annotations

import logging

import httpx

from ...config import settings

logger = logging.getLogger(__name__)


class SmsGateway:
    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        from_number: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.account_sid = account_sid or settings.sms_account_sid
        self.auth_token = auth_token or settings.sms_auth_token
        self.from_number = from_number or settings.sms_from_number
        if not (self.account_sid and self.auth_token and self.from_number):
            raise ValueError("SMS gateway credentials are not configured.")
        self.base_url = (base_url or settings.sms_base_url).rstrip("/")
        self.timeout = timeout or settings.sms_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            auth=(self.account_sid, self.auth_token),
            transport=self._transport,
        )

    def send(self, to: str, body: str) -> str:
        """Send one message and return the gateway's message id."""

        url = f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"
        with self._client() as client:
            response = client.post(url, data={"To": to, "From": self.from_number, "Body": body})
            response.raise_for_status()
            payload = response.json()
        message_id = payload.get("sid", "")
        logger.info(f"SMS dispatched to {to} (id={message_id})")
        return message_id


def get_sms_gateway() -> SmsGateway | None:
    if not settings.sms_configured:
        return None
    return SmsGateway()
