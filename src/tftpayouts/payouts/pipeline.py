"""
tftpayouts/payouts/pipeline.py

Turns a batch of payout records into unsigned transactions.

Every record ends in exactly one state, decided by the first rule that
applies, in this order:

    PENDING ─┬─> DUPLICATE_SKIPPED    reference already paid, or repeated in the batch
             ├─> INELIGIBLE_SKIPPED   destination cannot receive the asset
             ├─> VALIDATION_SKIPPED   payment is structurally invalid
             └─> EMITTED              envelope built, sequence number consumed

Skips are reported and the batch continues. Fatal errors propagate.

Usage:
    pipeline = PayoutPipeline(history, checker, builder)
    report = pipeline.run(records, sequence=config.sequence_number, sink=write_line)
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, Iterable, Iterator, List, Optional, Set

from ..errors import PaymentValidationError
from .eligibility import EligibilityChecker
from .records import PayoutRecord
from .tx_builder import BuiltTransaction, PayoutTransactionBuilder

logger = logging.getLogger("tftpayouts.payouts.pipeline")


class RecordStatus(Enum):
    """Terminal state of a payout record."""
    PENDING = "pending"
    DUPLICATE_SKIPPED = "duplicate_skipped"
    INELIGIBLE_SKIPPED = "ineligible_skipped"
    VALIDATION_SKIPPED = "validation_skipped"
    EMITTED = "emitted"


@dataclass
class RecordOutcome:
    """What happened to one payout record."""
    record: PayoutRecord
    status: RecordStatus
    reason: str = ""
    transaction: Optional[BuiltTransaction] = None

    @property
    def emitted(self) -> bool:
        return self.status == RecordStatus.EMITTED

    def to_dict(self) -> dict:
        data = {
            **self.record.to_dict(),
            "status": self.status.value,
            "reason": self.reason,
        }
        if self.transaction is not None:
            data["sequence"] = self.transaction.sequence
        return data


@dataclass
class BatchReport:
    """Summary of a processed batch."""
    start_sequence: int
    next_sequence: int
    outcomes: List[RecordOutcome] = field(default_factory=list)

    @property
    def emitted(self) -> List[BuiltTransaction]:
        return [o.transaction for o in self.outcomes if o.emitted]

    @property
    def counts(self) -> Counter:
        return Counter(o.status for o in self.outcomes)

    @property
    def skipped(self) -> List[RecordOutcome]:
        return [o for o in self.outcomes if not o.emitted]

    def to_dict(self) -> dict:
        counts = self.counts
        return {
            "records": len(self.outcomes),
            "emitted": counts[RecordStatus.EMITTED],
            "duplicate_skipped": counts[RecordStatus.DUPLICATE_SKIPPED],
            "ineligible_skipped": counts[RecordStatus.INELIGIBLE_SKIPPED],
            "validation_skipped": counts[RecordStatus.VALIDATION_SKIPPED],
            "start_sequence": self.start_sequence,
            "next_sequence": self.next_sequence,
        }


class PayoutPipeline:
    """
    Sequential payout pipeline.

    Holds no state between records apart from the references emitted so far
    in the current batch; the sequence number is passed in and handed back
    through the outcomes.
    """

    def __init__(
        self,
        history: FrozenSet[str],
        checker: EligibilityChecker,
        builder: PayoutTransactionBuilder,
        reject_batch_duplicates: bool = True,
    ):
        """
        Args:
            history: References already paid by the issuing account
            checker: Eligibility checker for destinations
            builder: Transaction builder
            reject_batch_duplicates: Skip a reference seen earlier in the same batch
        """
        self.history = history
        self.checker = checker
        self.builder = builder
        self.reject_batch_duplicates = reject_batch_duplicates

    def process(
        self,
        records: Iterable[PayoutRecord],
        sequence: int,
    ) -> Iterator[RecordOutcome]:
        """
        Process records in order, yielding one outcome per record.

        Args:
            records: Payout records in input order
            sequence: Sequence number for the first emitted transaction

        Yields:
            RecordOutcome for each record, in input order
        """
        emitted_refs: Set[str] = set()

        for record in records:
            outcome = self._process_record(record, sequence, emitted_refs)
            if outcome.emitted:
                emitted_refs.add(record.key)
                sequence = outcome.transaction.next_sequence
            else:
                logger.warning(
                    f"Skipping payment of {record.amount} to {record.destination} "
                    f"with memo {record.reference}: {outcome.reason}"
                )
            yield outcome

    def _process_record(
        self,
        record: PayoutRecord,
        sequence: int,
        emitted_refs: Set[str],
    ) -> RecordOutcome:
        if record.key in self.history:
            return RecordOutcome(record, RecordStatus.DUPLICATE_SKIPPED, "already happened")
        if self.reject_batch_duplicates and record.key in emitted_refs:
            return RecordOutcome(
                record, RecordStatus.DUPLICATE_SKIPPED, "duplicate reference in this batch"
            )

        if not self.checker.is_eligible(record.destination):
            return RecordOutcome(
                record,
                RecordStatus.INELIGIBLE_SKIPPED,
                self.checker.ineligible_reason(record.destination),
            )

        try:
            tx = self.builder.build(record, sequence)
        except PaymentValidationError as e:
            return RecordOutcome(record, RecordStatus.VALIDATION_SKIPPED, str(e))

        logger.info(
            f"Sending {record.amount} to {record.destination} with memo {record.reference} (seq {tx.sequence})"
        )
        return RecordOutcome(record, RecordStatus.EMITTED, transaction=tx)

    def run(
        self,
        records: Iterable[PayoutRecord],
        sequence: int,
        sink: Optional[Callable[[str], None]] = None,
    ) -> BatchReport:
        """
        Process a whole batch.

        Args:
            records: Payout records in input order
            sequence: Sequence number for the first emitted transaction
            sink: Called with the XDR of each emitted envelope, in order

        Returns:
            BatchReport with all outcomes and the next free sequence number
        """
        report = BatchReport(start_sequence=sequence, next_sequence=sequence)

        for outcome in self.process(records, sequence):
            report.outcomes.append(outcome)
            if outcome.emitted:
                report.next_sequence = outcome.transaction.next_sequence
                if sink is not None:
                    sink(outcome.transaction.xdr)

        counts = report.counts
        logger.info(
            f"Batch done: {counts[RecordStatus.EMITTED]} emitted, "
            f"{len(report.outcomes) - counts[RecordStatus.EMITTED]} skipped, "
            f"next sequence {report.next_sequence}"
        )
        return report
