"""
RecruiterOps backend application factory.

Run with:
    uvicorn recruiterops.main:create_app --factory
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from recruiterops.api import billing, health, jobs, profile
from recruiterops.api.deps import build_services
from recruiterops.core.config import Settings, settings as default_settings, validate_config
from recruiterops.core.database import Database
from recruiterops.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from recruiterops.core.logging import configure_logging
from recruiterops.core.middleware.request_id import RequestIdMiddleware
from recruiterops.core.validation import validate_env


def create_app(settings_obj: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the app with its own Database and services.

    Tests pass an explicit Settings and an in-memory Database; production
    reads both from the environment.
    """
    if settings_obj is None:
        if "PYTEST_CURRENT_TEST" not in os.environ:
            load_dotenv()
        settings_obj = default_settings

    configure_logging(settings_obj.ENV)
    validate_env(settings_obj=settings_obj)
    validate_config(settings_obj=settings_obj)

    db = database or Database(settings_obj.TEST_DATABASE_URL or settings_obj.DATABASE_URL)
    services = build_services(db, settings_obj)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger = logging.getLogger("recruiterops")
        logger.info("Starting RecruiterOps backend...")
        db.create_all()
        try:
            yield
        finally:
            logger.info("Stopping RecruiterOps backend...")
            if database is None:
                db.dispose()

    app = FastAPI(title="RecruiterOps - Backend", lifespan=lifespan)
    app.state.settings = settings_obj
    app.state.services = services

    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings_obj.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(billing.router, prefix="/api", tags=["billing"])
    app.include_router(profile.router, prefix="/api", tags=["profile"])
    app.include_router(jobs.router, prefix="/api", tags=["jobs"])
    app.include_router(health.root_router, tags=["health"])

    return app
