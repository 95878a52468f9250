"""Primary API router module with service and ledger endpoints."""

import logging

from fastapi import APIRouter

from loan_ledger.api.ledger_router import build_ledger_router
from loan_ledger.core.config import AppSettings
from loan_ledger.services.loan_ledger_service import LoanLedgerService


logger = logging.getLogger(__name__)


def build_router(settings: AppSettings, service: LoanLedgerService) -> APIRouter:
    """Build and return the top-level API router.

    Args:
        settings: Application settings payload.
        service: Ledger service backing the ledger endpoints.

    Returns:
        APIRouter: Fully configured router with all endpoints.
    """
    router = APIRouter()
    router.include_router(build_ledger_router(service))
    policy = service.policy

    @router.get("/", summary="Root endpoint")
    def read_root() -> dict:
        """Return a basic message confirming service availability."""
        return {"message": "{0} is running".format(settings.app_name)}

    @router.get("/health", summary="Health check")
    def health_check() -> dict:
        """Return service health status for monitors."""
        return {"status": "ok"}

    @router.get("/settings", summary="Settings snapshot")
    def get_settings_snapshot() -> dict:
        """Expose non-sensitive settings and the active ledger policy."""
        return {
            "app_name": settings.app_name,
            "debug": settings.debug,
            "host": settings.host,
            "port": settings.port,
            "policy": {
                "amortization_mode": policy.amortization_mode.value,
                "allow_prepayment": policy.allow_prepayment,
                "grace_days": policy.fines.grace_days,
                "daily_fine_rate_bps": policy.fines.daily_fine_rate_bps,
                "fine_cap_bps": policy.fines.fine_cap_bps,
                "min_principal": policy.terms.min_principal,
                "max_principal": policy.terms.max_principal,
                "max_interest_rate_bps": policy.terms.max_interest_rate_bps,
                "min_tenure_months": policy.terms.min_tenure_months,
                "max_tenure_months": policy.terms.max_tenure_months,
                "min_credit_score": policy.min_credit_score,
                "blocked_risk_levels": sorted(level.value for level in policy.blocked_risk_levels),
            },
        }

    return router
