"""
tftpayouts/horizon - Read-only access to a Stellar Horizon server.

Provides the payment history lookup and the account state lookup used by
the payout pipeline, plus the fixed-backoff retry policy for server errors.
"""

from .client import (
    HorizonClient,
    HorizonError,
    HorizonTransportError,
    PaymentRecord,
    Balance,
    AccountInfo,
)
from .retry import RetryPolicy, call_with_retry

__all__ = [
    "HorizonClient",
    "HorizonError",
    "HorizonTransportError",
    "PaymentRecord",
    "Balance",
    "AccountInfo",
    "RetryPolicy",
    "call_with_retry",
]
