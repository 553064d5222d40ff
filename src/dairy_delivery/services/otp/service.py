"""One-time password issuance and verification."""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from ...config import settings
from .sms import SmsGateway
from .store import OTPRecord, OTPStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OTPSendResult:
    success: bool
    message: str
    message_id: Optional[str] = None


@dataclass(slots=True)
class OTPVerifyResult:
    success: bool
    message: str
    attempts_left: Optional[int] = None


def generate_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


class OTPService:
    def __init__(
        self,
        store: OTPStore,
        gateway: SmsGateway | None = None,
        *,
        ttl_seconds: int | None = None,
        max_attempts: int | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.ttl_seconds = ttl_seconds or settings.otp_ttl_seconds
        self.max_attempts = max_attempts or settings.otp_max_attempts
        self._clock = clock or getattr(store, "now", time.time)

    def send(self, phone: str) -> OTPSendResult:
        code = generate_code()
        self.store.set(phone, OTPRecord(code=code, expires_at=self._clock() + self.ttl_seconds))

        if self.gateway is None:
            # Development fallback: no SMS gateway configured.
            logger.warning(f"OTP for {phone}: {code} (SMS gateway not configured)")
            return OTPSendResult(success=True, message="OTP generated (check server logs)", message_id="no-gateway")

        minutes = max(1, self.ttl_seconds // 60)
        try:
            message_id = self.gateway.send(
                phone, f"Your Dairy Delivery verification code is: {code}. Valid for {minutes} minutes."
            )
        except httpx.HTTPError as exc:
            logger.error(f"Failed to send OTP to {phone}: {exc}")
            self.store.delete(phone)
            return OTPSendResult(success=False, message="Failed to send OTP")
        return OTPSendResult(success=True, message="OTP sent successfully", message_id=message_id)

    def verify(self, phone: str, code: str) -> OTPVerifyResult:
        record = self.store.get(phone)
        if record is None:
            return OTPVerifyResult(success=False, message="No OTP found for this phone number")

        if record.expired(self._clock()):
            self.store.delete(phone)
            return OTPVerifyResult(success=False, message="OTP has expired")

        if record.attempts >= self.max_attempts:
            self.store.delete(phone)
            return OTPVerifyResult(success=False, message="Maximum verification attempts exceeded")

        if secrets.compare_digest(record.code, code):
            self.store.delete(phone)
            return OTPVerifyResult(success=True, message="OTP verified successfully")

        record.attempts += 1
        self.store.set(phone, record)
        return OTPVerifyResult(
            success=False,
            message="Invalid OTP",
            attempts_left=max(0, self.max_attempts - record.attempts),
        )

    def sweep(self) -> int:
        removed = self.store.sweep_expired()
        if removed:
            logger.info(f"Removed {removed} expired OTPs")
        return removed
