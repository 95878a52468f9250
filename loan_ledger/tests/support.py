"""Shared fixtures for ledger tests."""

from loan_ledger.common.protocol_constants import SECONDS_PER_DAY, SECONDS_PER_PERIOD
from loan_ledger.models.enums import EmploymentType
from loan_ledger.repositories.in_memory_record_store import InMemoryRecordStore
from loan_ledger.services.loan_ledger_service import LoanLedgerService


T0 = 1_700_000_000
ADMIN = "admin-key"
ALICE = "alice-key"
BOB = "bob-key"
PRINCIPAL = 10_000_000_000
RATE_BPS = 1200
TENURE = 12
INCOME = 20_000_000_000


class FakeClock:
    """Manually advanced unix clock."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def at_due(self, installment_number: int, start: int = T0) -> int:
        self.now = start + installment_number * SECONDS_PER_PERIOD
        return self.now

    def days_after_grace(self, installment_number: int, days: int, start: int = T0, grace_days: int = 2) -> int:
        self.now = start + installment_number * SECONDS_PER_PERIOD + (grace_days + days) * SECONDS_PER_DAY
        return self.now


def build_service(policy=None, register=(ALICE,)):
    """Return ``(service, store, clock)`` with the program initialized."""
    store = InMemoryRecordStore()
    clock = FakeClock()
    kwargs = {"store": store, "clock": clock}
    if policy is not None:
        kwargs["policy"] = policy
    service = LoanLedgerService(**kwargs)
    service.initialize(ADMIN, 250)
    for user in register:
        service.register_user(user, "User {0}".format(user), INCOME, EmploymentType.SALARIED)
    return service, store, clock
