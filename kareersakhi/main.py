import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

# Load env from the project root .env
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from kareersakhi.api import analysis, billing, entitlements, health, intake
from kareersakhi.core.config import settings, validate_config
from kareersakhi.core.database import create_all_tables
from kareersakhi.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from kareersakhi.core.logging import configure_logging
from kareersakhi.core.middleware.request_id import RequestIdMiddleware
from kareersakhi.features.analysis.gate import AnalysisGate
from kareersakhi.features.analysis.service import AnalysisService, HttpAnalysisService
from kareersakhi.features.billing.provider import PaymentProvider
from kareersakhi.features.billing.service import PaymentReconciler, get_provider
from kareersakhi.features.entitlements.storage import SqlStorage, StateStorage
from kareersakhi.features.entitlements.store import EntitlementStore
from kareersakhi.features.intake.validator import IntakeConstraints

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("kareersakhi")
    logger.info("Starting KareerSakhi backend...")
    create_all_tables()
    try:
        yield
    finally:
        logger.info("Stopping KareerSakhi backend...")


def create_app(
    storage: Optional[StateStorage] = None,
    provider: Optional[PaymentProvider] = None,
    analysis_service: Optional[AnalysisService] = None,
    constraints: Optional[IntakeConstraints] = None,
    analysis_timeout: Optional[float] = None,
) -> FastAPI:
    app = FastAPI(title="KareerSakhi - Backend", lifespan=lifespan)

    store = EntitlementStore(storage or SqlStorage())
    app.state.entitlement_store = store
    app.state.payment_reconciler = PaymentReconciler(store, provider or get_provider())
    app.state.analysis_gate = AnalysisGate(store, analysis_service or HttpAnalysisService(), timeout=analysis_timeout)
    app.state.intake_constraints = constraints or IntakeConstraints.from_accept(
        settings.ACCEPTED_FILE_TYPES, settings.MAX_FILE_SIZE_MB
    )

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router)
    app.include_router(intake.router)
    app.include_router(entitlements.router)
    app.include_router(analysis.router)
    app.include_router(billing.router)
    return app


app = create_app()
