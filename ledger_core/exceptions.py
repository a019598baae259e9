"""
Exception hierarchy for the ledger analytics engine.

Exception Hierarchy:
    LedgerError (base)
    └── LedgerDataError        - Record has an unexpected structure

    ValidationError            - Caller input (filter, dates, limits) is invalid
"""
from typing import Any, Optional


class LedgerError(Exception):
    """Base exception for all ledger-related errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class LedgerDataError(LedgerError):
    """
    A ledger record does not have the shape we understand.

    Only raised by strict parsing; the aggregation paths tolerate
    missing fields instead.
    """

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        record_id: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.record_id = record_id


class ValidationError(Exception):
    """
    Input validation failed.

    Used for validating caller input before any aggregation runs.
    """

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value!r})"
        return f"{self.field}: {self.message}"
