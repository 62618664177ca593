from __future__ import annotations

from dex_autotrader.enums.error_kind import ErrorKind


class TradingError(Exception):
    """Raised inside an operation; converted to an OperationResult at its boundary."""

    def __init__(self, kind: ErrorKind, reason: str = "") -> None:
        super().__init__(reason or kind.value)
        self.kind = kind
        self.reason = reason or kind.value
