"""
tftpayouts - Replay-safe TFT payout transactions for offline signing

Turns a list of payout instructions (destination, amount, reference) into
unsigned Stellar transactions:
- references already paid by the issuer are skipped (Horizon history)
- destinations without a TFT trustline are skipped (optional)
- sequence numbers are assigned strictly increasing across the batch
- each transaction is valid for a bounded window after construction

Nothing is signed or submitted.

Usage:
    from tftpayouts import HorizonClient, PayoutConfig
    from tftpayouts.cli import run_payouts

    config = PayoutConfig(sequence_number=123456789, payouts_file="payout_info.csv")
    report = run_payouts(config)
    print(report.next_sequence)

Library usage:
    from tftpayouts.payouts import (
        HistoryIndex, NoopChecker, PayoutTransactionBuilder, PayoutPipeline,
    )

    history = HistoryIndex(client, TFT_ISSUER).build()
    pipeline = PayoutPipeline(history, NoopChecker(), builder)
    for outcome in pipeline.process(records, sequence=5):
        ...
"""

from .config import (
    PayoutConfig,
    TFT_ISSUER,
    TFT_ASSET_CODE,
    BASE_FEE,
    TXN_VALIDITY_TIME_SECONDS,
    HORIZON_PAGE_LIMIT,
)
from .errors import (
    PayoutError,
    FatalInputError,
    MalformedRecordError,
    InvalidReferenceError,
    MissingSequenceError,
    FatalRemoteError,
    LedgerQueryError,
    RetriesExhaustedError,
    PaymentValidationError,
)
from .horizon import (
    HorizonClient,
    HorizonError,
    HorizonTransportError,
    RetryPolicy,
)
from .payouts import (
    PayoutRecord,
    HistoryIndex,
    EligibilityChecker,
    NoopChecker,
    HorizonTrustlineChecker,
    PayoutTransactionBuilder,
    PayoutPipeline,
    RecordStatus,
    BatchReport,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "PayoutConfig",
    "TFT_ISSUER",
    "TFT_ASSET_CODE",
    "BASE_FEE",
    "TXN_VALIDITY_TIME_SECONDS",
    "HORIZON_PAGE_LIMIT",
    # Errors
    "PayoutError",
    "FatalInputError",
    "MalformedRecordError",
    "InvalidReferenceError",
    "MissingSequenceError",
    "FatalRemoteError",
    "LedgerQueryError",
    "RetriesExhaustedError",
    "PaymentValidationError",
    # Horizon
    "HorizonClient",
    "HorizonError",
    "HorizonTransportError",
    "RetryPolicy",
    # Pipeline
    "PayoutRecord",
    "HistoryIndex",
    "EligibilityChecker",
    "NoopChecker",
    "HorizonTrustlineChecker",
    "PayoutTransactionBuilder",
    "PayoutPipeline",
    "RecordStatus",
    "BatchReport",
]
