"""
tftpayouts/horizon/client.py

Read-only Horizon client for the Stellar network.

Provides methods for:
- Payment history queries (for deduplication against past payouts)
- Account queries (for trustline checks)

Nothing here submits transactions. Responses from stellar_sdk are normalized
into small dataclasses and every failure is reported as one of two errors:
HorizonError (Horizon answered with an HTTP error) or HorizonTransportError
(Horizon could not be reached).
"""

import logging
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field

from stellar_sdk import Server
from stellar_sdk.exceptions import (
    BaseHorizonError,
    ConnectionError as StellarConnectionError,
)

logger = logging.getLogger("tftpayouts.horizon.client")


# ============================================================================
# ERRORS
# ============================================================================

class HorizonError(Exception):
    """Horizon answered a request with an HTTP error status."""

    def __init__(self, status: int, title: str = "", detail: str = ""):
        message = f"Horizon error {status}"
        if title:
            message += f": {title}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)
        self.status = status
        self.title = title
        self.detail = detail

    @property
    def is_server_error(self) -> bool:
        """5xx responses are transient and may be retried."""
        return 500 <= self.status < 600


class HorizonTransportError(Exception):
    """Horizon could not be reached (DNS, connection, TLS, timeout)."""
    pass


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class PaymentRecord:
    """One record of an account's payment history."""
    paging_token: str
    type: str
    source: str
    memo_type: Optional[str] = None  # None if the transaction was not joined
    memo: Optional[str] = None  # base64 for hash memos
    transaction_hash: str = ""

    @classmethod
    def from_horizon(cls, record: Dict[str, Any]) -> "PaymentRecord":
        tx = record.get("transaction") or {}
        return cls(
            paging_token=record["paging_token"],
            type=record.get("type", ""),
            source=record.get("from") or record.get("source_account", ""),
            memo_type=tx.get("memo_type"),
            memo=tx.get("memo"),
            transaction_hash=record.get("transaction_hash", ""),
        )


@dataclass
class Balance:
    """A balance line of an account."""
    asset_type: str
    amount: str
    asset_code: Optional[str] = None  # None for native XLM
    asset_issuer: Optional[str] = None

    @classmethod
    def from_horizon(cls, balance: Dict[str, Any]) -> "Balance":
        return cls(
            asset_type=balance.get("asset_type", ""),
            amount=balance.get("balance", "0"),
            asset_code=balance.get("asset_code"),
            asset_issuer=balance.get("asset_issuer"),
        )

    def is_asset(self, code: str, issuer: str) -> bool:
        return self.asset_code == code and self.asset_issuer == issuer


@dataclass
class AccountInfo:
    """Current state of an account, as far as payouts care."""
    account_id: str
    sequence: int = 0
    balances: List[Balance] = field(default_factory=list)

    @classmethod
    def from_horizon(cls, account: Dict[str, Any]) -> "AccountInfo":
        return cls(
            account_id=account.get("account_id") or account.get("id", ""),
            sequence=int(account.get("sequence", 0)),
            balances=[Balance.from_horizon(b) for b in account.get("balances", [])],
        )


# ============================================================================
# HORIZON CLIENT
# ============================================================================

class HorizonClient:
    """
    Horizon client exposing the two lookups a payout run needs.

    Example:
        client = HorizonClient("https://horizon.stellar.org")

        page = client.list_payments(issuer, cursor="", limit=200)
        account = client.get_account("GXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXX")

        client.close()
    """

    def __init__(self, horizon_url: str, server: Optional[Server] = None):
        """
        Initialize the client.

        Args:
            horizon_url: Base URL of the Horizon server
            server: Preconfigured stellar_sdk Server (created if None)
        """
        self.horizon_url = horizon_url
        self._server = server if server is not None else Server(horizon_url=horizon_url)

    def _call(self, builder, context: str) -> Dict[str, Any]:
        """
        Execute a stellar_sdk call builder and translate its errors.

        Raises:
            HorizonError: Horizon answered with an error status
            HorizonTransportError: The request never got an answer
        """
        try:
            return builder.call()
        except BaseHorizonError as e:
            logger.debug(f"{context}: Horizon returned {e.status}")
            raise HorizonError(
                status=e.status,
                title=e.title or "",
                detail=e.detail or "",
            ) from e
        except StellarConnectionError as e:
            raise HorizonTransportError(f"{context}: {e}") from e

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def list_payments(
        self,
        account: str,
        cursor: str = "",
        limit: int = 200,
    ) -> List[PaymentRecord]:
        """
        Get one page of an account's payments, oldest first.

        Transactions are joined so each record carries its memo.

        Args:
            account: Account whose payments to list
            cursor: Paging token to continue after ("" for the start)
            limit: Maximum records in the page

        Returns:
            List of PaymentRecord, empty when history is exhausted
        """
        builder = (
            self._server.payments()
            .for_account(account)
            .limit(limit)
            .order(desc=False)
            .join("transactions")
        )
        if cursor:
            builder = builder.cursor(cursor)

        response = self._call(builder, f"list_payments({account}, cursor={cursor!r})")
        records = response.get("_embedded", {}).get("records", [])
        return [PaymentRecord.from_horizon(r) for r in records]

    def get_account(self, account_id: str) -> AccountInfo:
        """
        Get the current state of an account.

        Args:
            account_id: Stellar account id

        Returns:
            AccountInfo with balance lines
        """
        builder = self._server.accounts().account_id(account_id)
        response = self._call(builder, f"get_account({account_id})")
        return AccountInfo.from_horizon(response)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._server.close()

    # ========================================================================
    # CONTEXT MANAGER
    # ========================================================================

    def __enter__(self) -> "HorizonClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
