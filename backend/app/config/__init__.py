"""
PURPOSE: Export configuration settings and constants for the Checkout Relay gateway.
"""

from .settings import (
    CANONICALIZATION_POLICIES,
    RAW_BODY_POLICY,
    SORTED_FIELDS_POLICY,
    Settings,
    settings,
)

__all__ = [
    "settings",
    "Settings",
    "RAW_BODY_POLICY",
    "SORTED_FIELDS_POLICY",
    "CANONICALIZATION_POLICIES",
]
