"""Manual triggers for the recurring jobs."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder

from ...errors import DairyDeliveryError
from ...services.scheduler.jobs import Job, trigger_job
from ..dependencies import Principal, get_jobs, require_role
from ..errors import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/jobs")
def job_names(
    jobs: dict[str, Job] = Depends(get_jobs),
    principal: Principal = Depends(require_role("admin")),
) -> dict:
    return {"jobs": sorted(jobs)}


@router.post("/jobs/{name}", status_code=status.HTTP_200_OK)
def run(
    name: str,
    jobs: dict[str, Job] = Depends(get_jobs),
    principal: Principal = Depends(require_role("admin")),
) -> dict:
    try:
        result = trigger_job(name, jobs)
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc
    except Exception as exc:
        logger.exception(f"Job '{name}' failed when triggered by {principal.user_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Job '{name}' failed: {str(exc)}",
        ) from exc
    return {"job": name, "success": True, "result": jsonable_encoder(result)}
