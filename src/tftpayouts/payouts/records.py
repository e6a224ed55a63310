"""
tftpayouts/payouts/records.py

Payout instructions and the parsing of the comma separated input.

Each input line is "destination,amount,reference". The whole batch is
parsed and every reference checked before anything else happens, so a
corrupted batch never produces partial output.
"""

import binascii
import logging
from dataclasses import dataclass
from typing import Iterable, List, TextIO

from ..errors import InvalidReferenceError, MalformedRecordError

logger = logging.getLogger("tftpayouts.payouts.records")

REFERENCE_BYTES = 32


def decode_reference(reference: str) -> bytes:
    """
    Decode a hex reference into the raw 32 byte memo hash.

    Raises:
        InvalidReferenceError: If the reference is not hex or not 32 bytes
    """
    try:
        raw = binascii.unhexlify(reference)
    except (binascii.Error, ValueError) as e:
        raise InvalidReferenceError(f"Memo {reference} is not valid hex") from e
    if len(raw) != REFERENCE_BYTES:
        raise InvalidReferenceError(
            f"Memo {reference} is {len(raw)} bytes, expected {REFERENCE_BYTES}"
        )
    return raw


def encode_reference(memo: bytes) -> str:
    """Raw memo hash bytes to the lowercase hex form used for comparison."""
    return binascii.hexlify(memo).decode("ascii")


@dataclass(frozen=True)
class PayoutRecord:
    """A single payout instruction."""
    destination: str
    amount: str
    reference: str

    @property
    def key(self) -> str:
        """Deduplication key: the reference in lowercase hex."""
        return self.reference.lower()

    @property
    def memo_bytes(self) -> bytes:
        return decode_reference(self.reference)

    def to_dict(self) -> dict:
        return {
            "destination": self.destination,
            "amount": self.amount,
            "reference": self.reference,
        }


def parse_payout_line(line: str, line_number: int = 0) -> PayoutRecord:
    """
    Parse one "destination,amount,reference" line.

    Args:
        line: Raw input line
        line_number: 1-based line number for error messages

    Raises:
        MalformedRecordError: If the line does not have exactly 3 fields
    """
    parts = line.strip().split(",")
    if len(parts) != 3:
        raise MalformedRecordError(
            f"Invalid file layout: expected 3 fields, got {len(parts)}",
            line_number=line_number or None,
        )
    destination, amount, reference = (p.strip() for p in parts)
    return PayoutRecord(destination=destination, amount=amount, reference=reference)


def parse_payouts(lines: Iterable[str]) -> List[PayoutRecord]:
    """
    Parse and check a whole batch of payout lines.

    Blank lines are ignored. Every reference is decoded up front.

    Raises:
        MalformedRecordError: On a line with the wrong shape
        InvalidReferenceError: On a reference that is not 32 hex encoded bytes
    """
    records = []
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        record = parse_payout_line(line, line_number)
        try:
            decode_reference(record.reference)
        except InvalidReferenceError as e:
            raise InvalidReferenceError(f"line {line_number}: {e}") from e
        records.append(record)

    logger.info(f"Loaded {len(records)} payout records")
    return records


def read_payouts(stream: TextIO) -> List[PayoutRecord]:
    """Read a batch of payout records from an open text stream."""
    return parse_payouts(stream)
