"""Translation of domain errors into HTTP errors."""

from __future__ import annotations

from fastapi import HTTPException, status

from ..errors import (
    DairyDeliveryError,
    NoAgentsAvailable,
    NotFoundError,
    PersistenceError,
    RoutesAlreadyGenerated,
    ValidationError,
)

STATUS_FOR_ERROR: tuple[tuple[type[DairyDeliveryError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (NoAgentsAvailable, status.HTTP_409_CONFLICT),
    (RoutesAlreadyGenerated, status.HTTP_409_CONFLICT),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(exc: DairyDeliveryError) -> HTTPException:
    for error_type, code in STATUS_FOR_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
