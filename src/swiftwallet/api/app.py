"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from swiftwallet.config import get_settings
from swiftwallet.engine import TransactionEngine
from swiftwallet.errors import (
    IntegrityFailure,
    LedgerError,
    NotFound,
    PartialBridgeFailure,
    SubmissionFailure,
)
from swiftwallet.ledger.database import close_db, get_session_factory, init_db
from swiftwallet.ledger.seed import seed_demo_users
from swiftwallet.ledger.store import LedgerStore
from swiftwallet.submitter import SimulatedSubmitter

logger = logging.getLogger(__name__)


def build_transaction_engine() -> TransactionEngine:
    """Wire the default engine against the configured database."""
    settings = get_settings()
    store = LedgerStore(get_session_factory(), lock_timeout=settings.lock_timeout_seconds)
    return TransactionEngine(
        store, submitter=SimulatedSubmitter(latency_ms=settings.submitter_latency_ms)
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    # Startup
    await init_db(drop=settings.seed_demo_data and not settings.is_production)
    if settings.seed_demo_data and not settings.is_production:
        await seed_demo_users(app.state.transaction_engine.store)
    yield
    # Shutdown
    await close_db()


def error_status(error: LedgerError) -> int:
    """HTTP status for a ledger failure."""
    if isinstance(error, NotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, (SubmissionFailure, IntegrityFailure, PartialBridgeFailure)):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    code = error_status(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=code, content={"success": False, **exc.to_dict()})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": (
                "Make sure sender, recipient and amount have all been provided "
                "and amount must be a positive number"
            ),
            "code": "invalid_input",
            "details": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()
            ],
        },
    )


def create_app(transaction_engine: Optional[TransactionEngine] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="SwiftWallet API",
        description="Custodial multi-chain balance ledger",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.transaction_engine = transaction_engine or build_transaction_engine()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Register routes
    from swiftwallet.api.routes import health, ledger

    app.include_router(health.router, tags=["Health"])
    app.include_router(ledger.router, prefix="/api", tags=["Ledger"])

    return app


# Default app instance
app = create_app()
