"""Deterministic record addresses derived from seed parts."""

import hashlib
import struct
from typing import Union

from loan_ledger.common.protocol_constants import (
    SEED_LOAN,
    SEED_PAYMENT,
    SEED_PROGRAM_STATE,
    SEED_RISK_PROFILE,
    SEED_USER_PROFILE,
)

from .exceptions import ErrorKind, LoanProgramError

Seed = Union[str, bytes]

_U64_MAX = 2**64 - 1


def derive_address(*seeds: Seed) -> str:
    """Hash length-prefixed seed parts into a hex record address.

    Each part is prefixed with its u32 little-endian length so that
    ``("ab", "c")`` and ``("a", "bc")`` never collide.
    """
    digest = hashlib.sha256()
    for seed in seeds:
        raw = seed.encode("utf-8") if isinstance(seed, str) else bytes(seed)
        digest.update(struct.pack("<I", len(raw)))
        digest.update(raw)
    return digest.hexdigest()


def program_state_address() -> str:
    return derive_address(SEED_PROGRAM_STATE)


def user_profile_address(user: str) -> str:
    return derive_address(SEED_USER_PROFILE, user)


def loan_address(user: str, loan_id: int) -> str:
    """Address of loan ``loan_id`` of ``user``.

    Raises:
        LoanProgramError: ``LoanNotFound`` when the id is outside the u64 range.
    """
    if not 0 <= loan_id <= _U64_MAX:
        raise LoanProgramError(ErrorKind.LOAN_NOT_FOUND, "loan id {0} is out of range".format(loan_id))
    return derive_address(SEED_LOAN, user, struct.pack("<Q", loan_id))


def payment_address(loan: str, installment_number: int) -> str:
    return derive_address(SEED_PAYMENT, loan, struct.pack("<B", installment_number))


def risk_profile_address(user: str) -> str:
    return derive_address(SEED_RISK_PROFILE, user)
