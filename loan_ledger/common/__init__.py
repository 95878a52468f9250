"""Shared arithmetic, constants and loan math helpers."""
