"""Request-scoped dependencies shared by the routers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from ..services.otp.service import OTPService
from ..services.scheduler.jobs import Job

ROLES = ("customer", "agent", "admin")


@dataclass(slots=True, frozen=True)
class Principal:
    user_id: str
    role: str


def get_principal(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Principal:
    """Principal asserted by the upstream gateway."""
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    role = x_user_role.lower()
    if role not in ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Unknown role '{x_user_role}'")
    return Principal(user_id=x_user_id, role=role)


def require_role(*roles: str) -> Callable[[Principal], Principal]:
    def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(roles)}",
            )
        return principal

    return dependency


def get_otp_service(request: Request) -> OTPService:
    return request.app.state.otp_service


def get_jobs(request: Request) -> dict[str, Job]:
    return request.app.state.jobs
