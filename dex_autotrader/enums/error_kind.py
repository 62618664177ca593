"""
Closed set of failure kinds carried by every fallible engine operation.

Callers branch on the kind, never on message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Why an engine operation did not complete."""

    NO_IDENTITY = "no_identity"
    ORACLE_UNAVAILABLE = "oracle_unavailable"
    AMOUNT_TOO_SMALL = "amount_too_small"
    UNSUPPORTED_TOKEN = "unsupported_token"
    SWAP_FAILED = "swap_failed"
    NO_ACTIVE_SESSION = "no_active_session"
    INVALID_AMOUNT = "invalid_amount"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"
