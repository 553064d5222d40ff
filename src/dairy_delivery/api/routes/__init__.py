"""Route group exports."""

from . import admin, auth, billing, health, routes

__all__ = ["health", "routes", "billing", "admin", "auth"]
