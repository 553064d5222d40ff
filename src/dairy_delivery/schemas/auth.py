"""OTP request/response schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

PHONE_PATTERN = r"^\+?[0-9]{10,15}$"


class OTPSendRequest(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)


class OTPVerifyRequest(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    otp: str = Field(..., pattern=r"^[0-9]{6}$")


class OTPSendResponse(BaseModel):
    success: bool
    message: str


class OTPVerifyResponse(BaseModel):
    success: bool
    message: str
    attempts_left: Optional[int] = None
