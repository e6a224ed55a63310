"""
tftpayouts/config.py

Configuration constants and data classes for tftpayouts.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Optional

from .errors import MissingSequenceError
from .horizon.retry import RetryPolicy


# TFT asset on the Stellar public network
TFT_ISSUER = "GBOVQKJYHXRR3DX6NOX2RRYFRCUMSADGDESTDNBDS6CDVLGVESRTAC47"
TFT_ASSET_CODE = "TFT"

# Horizon caps page size at 200 records
HORIZON_PAGE_LIMIT = 200

BASE_FEE = 1_000_000  # stroops per operation (0.1 XLM)
TXN_VALIDITY_TIME_SECONDS = 60 * 60 * 24 * 6  # 6 days

# Sequence numbers are int64 in XDR
MAX_SEQUENCE = 2 ** 63 - 1

RETRY_BACKOFF_SECONDS = 1.0

DEFAULT_PAYOUTS_FILE = "payout_info.csv"
DEFAULT_OUTPUT_FILE = "payouts_to_sign.txt"

DEFAULT_NETWORK = "public"

HORIZON_URLS: Dict[str, str] = {
    "public": "https://horizon.stellar.org",
    "testnet": "https://horizon-testnet.stellar.org",
}

NETWORK_PASSPHRASES: Dict[str, str] = {
    "public": "Public Global Stellar Network ; September 2015",
    "testnet": "Test SDF Network ; September 2015",
}


@dataclass
class PayoutConfig:
    """Settings for one payout run. Resolved once, before the run starts."""
    sequence_number: int = 0
    payouts_file: str = DEFAULT_PAYOUTS_FILE
    output_file: str = DEFAULT_OUTPUT_FILE
    check_trust: bool = True
    network: str = DEFAULT_NETWORK
    horizon_url: Optional[str] = None
    asset_code: str = TFT_ASSET_CODE
    asset_issuer: str = TFT_ISSUER
    max_retries: Optional[int] = None  # None = retry 5xx forever
    retry_backoff: float = RETRY_BACKOFF_SECONDS

    @property
    def resolved_horizon_url(self) -> str:
        """Explicit Horizon URL, or the default for the configured network."""
        return self.horizon_url or HORIZON_URLS[self.network]

    @property
    def network_passphrase(self) -> str:
        return NETWORK_PASSPHRASES[self.network]

    def validate(self) -> None:
        """
        Check the configuration before any network access.

        Raises:
            MissingSequenceError: If the starting sequence number is missing or out of range
            ValueError: On an unknown network or invalid retry settings
        """
        if not self.sequence_number:
            raise MissingSequenceError("Sequence number is required")
        if self.sequence_number < 0:
            raise MissingSequenceError(
                f"Sequence number must be positive, got {self.sequence_number}"
            )
        if self.sequence_number > MAX_SEQUENCE:
            raise MissingSequenceError(
                f"Sequence number {self.sequence_number} exceeds the maximum {MAX_SEQUENCE}"
            )
        if self.network not in NETWORK_PASSPHRASES:
            raise ValueError(
                f"Unknown network '{self.network}', use one of {sorted(NETWORK_PASSPHRASES)}"
            )
        if self.max_retries is not None and self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_backoff < 0:
            raise ValueError("retry_backoff must be >= 0")

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            backoff_seconds=self.retry_backoff,
            max_retries=self.max_retries,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["resolved_horizon_url"] = self.resolved_horizon_url
        return data
