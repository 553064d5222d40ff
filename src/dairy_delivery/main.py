"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import admin, auth, billing, health, routes
from .config import settings
from .services.otp import InMemoryOTPStore, OTPService, get_sms_gateway
from .services.scheduler.jobs import build_jobs
from .services.scheduler.scheduler import build_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    otp_store = InMemoryOTPStore()
    gateway = get_sms_gateway()
    if gateway is None:
        logger.warning("SMS gateway not configured; OTP codes will be written to the server log")
    app.state.otp_service = OTPService(otp_store, gateway)
    app.state.jobs = build_jobs(app.state.otp_service)

    # The OTP sweep runs regardless; scheduler_enabled gates only the cron jobs.
    scheduler = build_scheduler(app.state.jobs, cron_enabled=settings.scheduler_enabled)
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info(f"Scheduler started (cron jobs {'enabled' if settings.scheduler_enabled else 'disabled'})")
    try:
        yield
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
        otp_store.close()


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(routes.router, prefix=settings.api_prefix)
    app.include_router(billing.router, prefix=settings.api_prefix)
    app.include_router(admin.router, prefix=settings.api_prefix)
    app.include_router(auth.router, prefix=settings.api_prefix)
    return app


app = create_app()
