"""
tftpayouts/errors.py

Exception hierarchy for payout runs.

    PayoutError
    ├── FatalInputError          (abort: the input batch is unusable)
    │   ├── MalformedRecordError
    │   ├── InvalidReferenceError
    │   └── MissingSequenceError
    ├── FatalRemoteError         (abort: Horizon could not be queried)
    │   ├── LedgerQueryError
    │   └── RetriesExhaustedError
    └── PaymentValidationError   (per record: the record is skipped)
"""

from typing import Optional


class PayoutError(Exception):
    """Base class for all tftpayouts errors."""
    pass


# ============================================================================
# FATAL INPUT ERRORS
# ============================================================================

class FatalInputError(PayoutError):
    """The payout input or run configuration is unusable."""
    pass


class MalformedRecordError(FatalInputError):
    """An input line does not have the destination,amount,reference shape."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class InvalidReferenceError(FatalInputError):
    """A payout reference is not a hex encoded 32 byte value."""
    pass


class MissingSequenceError(FatalInputError):
    """No usable starting sequence number was configured."""
    pass


# ============================================================================
# FATAL REMOTE ERRORS
# ============================================================================

class FatalRemoteError(PayoutError):
    """A Horizon failure that cannot be retried or masked."""
    pass


class LedgerQueryError(FatalRemoteError):
    """The payment history of the issuing account could not be read."""
    pass


class RetriesExhaustedError(FatalRemoteError):
    """A bounded retry budget ran out on server errors."""

    def __init__(self, context: str, attempts: int):
        super().__init__(f"{context}: giving up after {attempts} attempts")
        self.context = context
        self.attempts = attempts


# ============================================================================
# PER RECORD ERRORS
# ============================================================================

class PaymentValidationError(PayoutError):
    """The payment operation for a single record is structurally invalid."""
    pass
