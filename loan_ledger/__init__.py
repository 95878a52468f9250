"""Micro-loan ledger: lifecycle and credit-risk state machine."""

__version__ = "0.1.0"
