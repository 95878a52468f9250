"""Closed enumerations stored in ledger records.

Declaration order is part of the record layout: each member is encoded as
its zero-based position, so new members may only be appended.
"""

from enum import Enum
from typing import List, Type, TypeVar


E = TypeVar("E", bound="StringEnum")


class StringEnum(str, Enum):
    """Base enum class with string behavior for JSON serialization."""

    @classmethod
    def members(cls: Type[E]) -> List[E]:
        """Return members in declaration (encoding) order."""
        return list(cls)

    def variant_index(self) -> int:
        """Return the encoded variant index."""
        return type(self).members().index(self)

    @classmethod
    def from_variant_index(cls: Type[E], index: int) -> E:
        """Resolve an encoded variant index."""
        members = cls.members()
        if index < 0 or index >= len(members):
            raise ValueError("{0} has no variant index {1}".format(cls.__name__, index))
        return members[index]


class EmploymentType(StringEnum):
    """Borrower employment category."""

    SALARIED = "SALARIED"
    SELF_EMPLOYED = "SELF_EMPLOYED"
    BUSINESS_OWNER = "BUSINESS_OWNER"
    DAILY_WAGE = "DAILY_WAGE"
    UNEMPLOYED = "UNEMPLOYED"


class LoanStatus(StringEnum):
    """Loan lifecycle states.

    ``CANCELLED`` is reserved; no transition produces it.
    """

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    DEFAULTED = "DEFAULTED"
    CANCELLED = "CANCELLED"


class RiskLevel(StringEnum):
    """Risk classification tiers, ordered from safest to riskiest."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AmortizationMode(StringEnum):
    """Arithmetic used to evaluate the amortizing-loan formula."""

    FLOAT = "FLOAT"
    DECIMAL = "DECIMAL"
