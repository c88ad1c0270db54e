"""
This file contains custom, application-specific exceptions.

Every ledger operation raises one of these instead of returning an error value.
`LedgerError.to_result()` gives the stable `{"ok": False, ...}` shape that the
HTTP layer (and any other caller) can render as-is.
"""
from typing import Any, Optional


class LedgerError(Exception):
    """Base class for all ledger errors."""
    code = "LedgerError"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_result(self) -> dict[str, Any]:
        result: dict[str, Any] = {"ok": False, "error": self.code, "message": self.message}
        if self.details is not None:
            result["details"] = self.details
        return result


class InvalidAmount(LedgerError):
    """Raised when a charge or payment amount is not a finite, positive number."""
    code = "InvalidAmount"


class InvalidFee(LedgerError):
    """Raised when a per-student fee is negative or not finite."""
    code = "InvalidFee"


class NotFound(LedgerError):
    """Raised when a referenced teacher or student does not exist."""
    code = "NotFound"


class StoreError(LedgerError):
    """Raised when the underlying database call fails. Wraps the driver error."""
    code = "StoreError"

    def __init__(self, message: str, details: Optional[Any] = None, original: Optional[BaseException] = None):
        super().__init__(message, details)
        self.original = original
