"""Fixed-width integer arithmetic for ledger records.

Python integers never wrap, so every aggregate update goes through the
helpers below to reproduce the ledger's unsigned/signed field widths.
Checked operations raise ``MathOverflow``. Saturating operations stop at a
bound and are used for bounded business fields such as credit score.
"""

from __future__ import annotations

from dataclasses import dataclass

from loan_ledger.models.exceptions import ErrorKind, LoanProgramError


@dataclass(frozen=True)
class IntWidth:
    """Inclusive integer range of one record field type."""

    name: str
    minimum: int
    maximum: int

    def contains(self, value: int) -> bool:
        return self.minimum <= value <= self.maximum


U8 = IntWidth("u8", 0, 2**8 - 1)
U16 = IntWidth("u16", 0, 2**16 - 1)
U64 = IntWidth("u64", 0, 2**64 - 1)
U128 = IntWidth("u128", 0, 2**128 - 1)
I64 = IntWidth("i64", -(2**63), 2**63 - 1)


def _overflow(operation: str, left: int, right: int, width: IntWidth) -> LoanProgramError:
    return LoanProgramError(
        ErrorKind.MATH_OVERFLOW,
        "{0} overflow: {1} {2} {3} exceeds {4}".format(width.name, left, operation, right, width.name),
    )


def narrow(value: int, width: IntWidth) -> int:
    """Checked narrowing conversion into ``width``."""
    if not width.contains(value):
        raise LoanProgramError(
            ErrorKind.MATH_OVERFLOW,
            "value {0} does not fit in {1}".format(value, width.name),
        )
    return value


def checked_add(left: int, right: int, width: IntWidth = U64) -> int:
    result = left + right
    if not width.contains(result):
        raise _overflow("+", left, right, width)
    return result


def checked_sub(left: int, right: int, width: IntWidth = U64) -> int:
    result = left - right
    if not width.contains(result):
        raise _overflow("-", left, right, width)
    return result


def checked_mul(left: int, right: int, width: IntWidth = U64) -> int:
    result = left * right
    if not width.contains(result):
        raise _overflow("*", left, right, width)
    return result


def clamp(value: int, lower: int, upper: int) -> int:
    """Clamp ``value`` into ``[lower, upper]``."""
    if lower > upper:
        raise ValueError("clamp lower bound {0} exceeds upper bound {1}".format(lower, upper))
    return max(lower, min(upper, value))


def saturating_add(value: int, delta: int, upper: int) -> int:
    """Add ``delta`` and stop at ``upper``."""
    return min(value + delta, upper)


def saturating_sub(value: int, delta: int, lower: int = 0) -> int:
    """Subtract ``delta`` and stop at ``lower``."""
    return max(value - delta, lower)
