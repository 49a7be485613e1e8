"""Utility functions."""

from kaza.utils.audit import record_tier_change

__all__ = [
    "record_tier_change",
]
