"""Routing endpoints."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import DairyDeliveryError
from ...schemas.routing import (
    RouteGenerationRequest,
    RouteGenerationResponse,
    RouteModel,
    RouteStatus,
    RouteStopModel,
    StopStatusUpdate,
)
from ...services.routing.service import generate_routes, get_agent_route, list_routes
from ...services.routing.status import update_stop_status
from ..dependencies import Principal, require_role
from ..errors import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/generate", response_model=RouteGenerationResponse, status_code=status.HTTP_200_OK)
def generate(
    payload: RouteGenerationRequest,
    principal: Principal = Depends(require_role("admin")),
) -> RouteGenerationResponse:
    try:
        result = generate_routes(payload.date, replace=payload.replace)
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc
    except Exception as exc:
        logger.exception(f"Error generating routes for {payload.date}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate routes: {str(exc)}",
        ) from exc
    logger.info(f"Admin {principal.user_id} generated {len(result.routes)} routes for {payload.date}")
    return RouteGenerationResponse.from_result(result)


@router.get("/my-route", response_model=Optional[RouteModel])
def my_route(
    route_date: Optional[date] = Query(default=None, alias="date"),
    principal: Principal = Depends(require_role("agent")),
) -> Optional[RouteModel]:
    """The calling agent's route for a date (today by default), or null."""
    try:
        route = get_agent_route(principal.user_id, route_date or date.today())
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc
    return RouteModel.from_domain(route) if route else None


@router.put("/stops/{stop_id}/status", response_model=RouteStopModel)
def update_stop(
    stop_id: str,
    payload: StopStatusUpdate,
    principal: Principal = Depends(require_role("agent")),
) -> RouteStopModel:
    try:
        stop = update_stop_status(
            stop_id,
            payload.status,
            notes=payload.delivery_notes,
            proof_image=payload.proof_image,
            agent_id=principal.user_id,
        )
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc
    except Exception as exc:
        logger.exception(f"Error updating stop {stop_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update stop status: {str(exc)}",
        ) from exc
    return RouteStopModel.from_domain(stop)


@router.get("", response_model=List[RouteModel])
def all_routes(
    route_date: Optional[date] = Query(default=None, alias="date"),
    route_status: Optional[RouteStatus] = Query(default=None, alias="status"),
    principal: Principal = Depends(require_role("admin")),
) -> List[RouteModel]:
    try:
        routes = list_routes(route_date, route_status)
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc
    return [RouteModel.from_domain(route) for route in routes]
