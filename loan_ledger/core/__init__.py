"""Core utilities for configuration and logging."""

from .config import AppSettings, LedgerPolicy, load_policy, load_settings
from .logging_config import get_logger, setup_logging

__all__ = [
    "AppSettings",
    "LedgerPolicy",
    "load_policy",
    "load_settings",
    "get_logger",
    "setup_logging",
]
