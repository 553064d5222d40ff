"""Exceptions raised by the routing and billing core."""

from __future__ import annotations


class DairyDeliveryError(Exception):
    """Base class for errors surfaced by the core services."""


class ValidationError(DairyDeliveryError, ValueError):
    """Input that passed schema validation but is still unusable."""


class InvalidStatusTransition(ValidationError):
    def __init__(self, entity: str, current: str, requested: str) -> None:
        super().__init__(f"Cannot move {entity} from '{current}' to '{requested}'.")
        self.entity = entity
        self.current = current
        self.requested = requested


class NotFoundError(DairyDeliveryError, LookupError):
    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} '{entity_id}' not found.")
        self.entity = entity
        self.entity_id = entity_id


class NoAgentsAvailable(DairyDeliveryError):
    """Route generation needs at least one active delivery agent."""

    def __init__(self) -> None:
        super().__init__("No active delivery agents available.")


class RoutesAlreadyGenerated(DairyDeliveryError):
    def __init__(self, route_date: str, reason: str | None = None) -> None:
        message = f"Routes already exist for {route_date}."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)
        self.route_date = route_date


class PersistenceError(DairyDeliveryError):
    """The store failed; the current unit of work was rolled back."""
