"""Service layer exports."""

from .loan_ledger_service import LoanLedgerService
from .loan_lifecycle import TransitionResult

__all__ = [
    "LoanLedgerService",
    "TransitionResult",
]
