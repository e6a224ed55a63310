"""
tftpayouts/payouts/tx_builder.py

Transaction builder using python stellar-sdk.

Builds one unsigned Stellar transaction per payout record:
- a single payment of the payout asset from the issuing account
- the payout reference as a hash memo
- an explicit sequence number
- time bounds ending a fixed window after construction

The resulting envelopes are handed to an offline signer; nothing is signed
or submitted here.
"""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable

from stellar_sdk import (
    Account,
    Asset,
    StrKey,
    TransactionBuilder,
    TransactionEnvelope,
)

from ..config import BASE_FEE, MAX_SEQUENCE, TXN_VALIDITY_TIME_SECONDS
from ..errors import PaymentValidationError
from .records import PayoutRecord, decode_reference

logger = logging.getLogger("tftpayouts.payouts.tx_builder")


# ============================================================================
# CONSTANTS
# ============================================================================

STROOPS_PER_UNIT = Decimal(10) ** 7  # 7 decimal places
MAX_AMOUNT = Decimal(2 ** 63 - 1) / STROOPS_PER_UNIT  # int64 stroops


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class BuiltTransaction:
    """An unsigned payout transaction ready for signing."""
    record: PayoutRecord
    envelope: TransactionEnvelope
    xdr: str
    sequence: int
    next_sequence: int

    def to_dict(self) -> dict:
        return {
            "destination": self.record.destination,
            "amount": self.record.amount,
            "reference": self.record.reference,
            "sequence": self.sequence,
            "next_sequence": self.next_sequence,
            "xdr": self.xdr,
        }


# ============================================================================
# VALIDATION
# ============================================================================

def validate_destination(destination: str) -> None:
    if not (
        StrKey.is_valid_ed25519_public_key(destination)
        or StrKey.is_valid_med25519_public_key(destination)
    ):
        raise PaymentValidationError(f"invalid destination account {destination!r}")


def validate_amount(amount: str) -> Decimal:
    """
    Check that amount fits the ledger's 7 decimal fixed point format.

    Returns:
        The amount as a Decimal
    """
    try:
        value = Decimal(amount)
    except InvalidOperation as e:
        raise PaymentValidationError(f"amount {amount!r} is not a number") from e

    if not value.is_finite():
        raise PaymentValidationError(f"amount {amount!r} is not a number")
    if value <= 0:
        raise PaymentValidationError(f"amount {amount!r} must be positive")
    if value > MAX_AMOUNT:
        raise PaymentValidationError(f"amount {amount!r} exceeds {MAX_AMOUNT}")
    if (value * STROOPS_PER_UNIT) % 1 != 0:
        raise PaymentValidationError(f"amount {amount!r} has more than 7 decimal places")
    return value


def payout_asset(code: str, issuer: str) -> Asset:
    try:
        return Asset(code, issuer)
    except ValueError as e:
        raise PaymentValidationError(f"invalid asset {code}:{issuer}: {e}") from e


# ============================================================================
# TRANSACTION BUILDER
# ============================================================================

class PayoutTransactionBuilder:
    """
    Builds payout transactions paid from the issuing account.

    Example:
        builder = PayoutTransactionBuilder(
            source_account=TFT_ISSUER,
            asset_code="TFT",
            asset_issuer=TFT_ISSUER,
            network_passphrase=Network.PUBLIC_NETWORK_PASSPHRASE,
        )
        built = builder.build(record, sequence=5)

        print(built.xdr)          # hand to the signer
        sequence = built.next_sequence
    """

    def __init__(
        self,
        source_account: str,
        asset_code: str,
        asset_issuer: str,
        network_passphrase: str,
        base_fee: int = BASE_FEE,
        validity_seconds: int = TXN_VALIDITY_TIME_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize transaction builder.

        Args:
            source_account: Account paying out (and operation source)
            asset_code: Code of the payout asset
            asset_issuer: Issuer of the payout asset
            network_passphrase: Passphrase of the target network
            base_fee: Fee per operation in stroops
            validity_seconds: How long after construction the tx stays valid
            clock: Returns the current unix time
        """
        self.source_account = source_account
        self.asset_code = asset_code
        self.asset_issuer = asset_issuer
        self.network_passphrase = network_passphrase
        self.base_fee = base_fee
        self.validity_seconds = validity_seconds
        self._clock = clock

    def build(self, record: PayoutRecord, sequence: int) -> BuiltTransaction:
        """
        Build the unsigned payout transaction for one record.

        Args:
            record: Payout record
            sequence: Sequence number for this transaction

        Returns:
            BuiltTransaction carrying the envelope and the next sequence number

        Raises:
            InvalidReferenceError: If the reference cannot be decoded (fatal)
            PaymentValidationError: If the payment is invalid (skip the record)
            ValueError: If sequence is outside 1..MAX_SEQUENCE
        """
        if sequence < 1:
            raise ValueError(f"sequence must be positive, got {sequence}")
        if sequence > MAX_SEQUENCE:
            raise ValueError(f"sequence {sequence} exceeds the maximum {MAX_SEQUENCE}")

        memo = decode_reference(record.reference)

        validate_destination(record.destination)
        validate_amount(record.amount)
        asset = payout_asset(self.asset_code, self.asset_issuer)

        # The builder increments the account sequence before using it
        source = Account(self.source_account, sequence - 1)
        valid_until = int(self._clock()) + self.validity_seconds

        try:
            envelope = (
                TransactionBuilder(
                    source_account=source,
                    network_passphrase=self.network_passphrase,
                    base_fee=self.base_fee,
                )
                .append_payment_op(
                    destination=record.destination,
                    asset=asset,
                    amount=record.amount,
                    source=self.source_account,
                )
                .add_hash_memo(memo)
                .add_time_bounds(0, valid_until)
                .build()
            )
        except ValueError as e:
            raise PaymentValidationError(
                f"Could not construct payment to {record.destination}: {e}"
            ) from e

        built = BuiltTransaction(
            record=record,
            envelope=envelope,
            xdr=envelope.to_xdr(),
            sequence=envelope.transaction.sequence,
            next_sequence=source.sequence + 1,
        )
        logger.debug(
            f"Built payout tx seq={built.sequence} to {record.destination} valid until {valid_until}"
        )
        return built
