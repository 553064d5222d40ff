"""Phone OTP issuance and verification."""

from .service import OTPService, OTPSendResult, OTPVerifyResult
from .sms import SmsGateway, get_sms_gateway
from .store import InMemoryOTPStore, OTPRecord, OTPStore

__all__ = [
    "OTPService",
    "OTPSendResult",
    "OTPVerifyResult",
    "SmsGateway",
    "get_sms_gateway",
    "InMemoryOTPStore",
    "OTPRecord",
    "OTPStore",
]
