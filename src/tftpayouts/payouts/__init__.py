"""
tftpayouts/payouts/

Payout-to-transaction pipeline: history deduplication, trustline checks,
transaction construction and the batch state machine.
"""

from .records import (
    PayoutRecord,
    parse_payout_line,
    parse_payouts,
    read_payouts,
    decode_reference,
)

from .history import HistoryIndex, build_history_index

from .eligibility import (
    EligibilityChecker,
    NoopChecker,
    HorizonTrustlineChecker,
    create_checker,
)

from .tx_builder import PayoutTransactionBuilder, BuiltTransaction

from .pipeline import (
    PayoutPipeline,
    RecordStatus,
    RecordOutcome,
    BatchReport,
)

__all__ = [
    # Input records
    "PayoutRecord",
    "parse_payout_line",
    "parse_payouts",
    "read_payouts",
    "decode_reference",
    # History
    "HistoryIndex",
    "build_history_index",
    # Eligibility
    "EligibilityChecker",
    "NoopChecker",
    "HorizonTrustlineChecker",
    "create_checker",
    # Transaction building
    "PayoutTransactionBuilder",
    "BuiltTransaction",
    # Pipeline
    "PayoutPipeline",
    "RecordStatus",
    "RecordOutcome",
    "BatchReport",
]
