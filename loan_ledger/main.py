"""Application entrypoint for the micro-loan ledger FastAPI service."""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from loan_ledger.api.router import build_router
from loan_ledger.core import AppSettings, LedgerPolicy, get_logger, load_policy, load_settings, setup_logging
from loan_ledger.repositories import InMemoryRecordStore
from loan_ledger.services import LoanLedgerService


logger = get_logger(__name__)


def create_app(
    settings: Optional[AppSettings] = None,
    service: Optional[LoanLedgerService] = None,
    policy: Optional[LedgerPolicy] = None,
) -> FastAPI:
    """Create and configure a FastAPI application instance."""
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    if service is None:
        service = LoanLedgerService(store=InMemoryRecordStore(), policy=policy or load_policy())

    app = FastAPI(title=settings.app_name, debug=settings.debug)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(build_router(settings, service))
    app.state.ledger_service = service

    logger.info("Application initialized: %s", settings.app_name)
    return app


def run() -> None:
    """Start the ASGI server for local development."""
    settings = load_settings()
    try:
        uvicorn.run(
            "loan_ledger.main:create_app",
            factory=True,
            host=settings.host,
            port=settings.port,
            reload=settings.debug,
        )
    except Exception:
        logger.exception("Failed to start uvicorn server.")
        raise


if __name__ == "__main__":
    run()
