"""Phone OTP endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.auth import OTPSendRequest, OTPSendResponse, OTPVerifyRequest, OTPVerifyResponse
from ...services.otp.service import OTPService
from ..dependencies import get_otp_service

router = APIRouter(prefix="/auth/otp", tags=["auth"])


@router.post("/send", response_model=OTPSendResponse)
def send_otp(payload: OTPSendRequest, otp_service: OTPService = Depends(get_otp_service)) -> OTPSendResponse:
    result = otp_service.send(payload.phone)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.message)
    return OTPSendResponse(success=True, message=result.message)


@router.post("/verify", response_model=OTPVerifyResponse)
def verify_otp(payload: OTPVerifyRequest, otp_service: OTPService = Depends(get_otp_service)) -> OTPVerifyResponse:
    """Check a code; failures come back as ``success: false`` with a reason."""
    result = otp_service.verify(payload.phone, payload.otp)
    return OTPVerifyResponse(success=result.success, message=result.message, attempts_left=result.attempts_left)
