"""
tftpayouts/payouts/history.py

Index of references already paid out by the issuing account.

Every payout carries its reference as a hash memo, so the payment history of
the issuer on the ledger is the record of what has been paid. The index is
built once per run, before any payout record is processed, and is not
modified afterwards.
"""

import base64
import binascii
import logging
import time
from typing import Callable, FrozenSet, Optional, Set, TYPE_CHECKING

from ..config import HORIZON_PAGE_LIMIT
from ..errors import LedgerQueryError, RetriesExhaustedError
from ..horizon.client import HorizonError, HorizonTransportError, PaymentRecord
from ..horizon.retry import RetryPolicy, call_with_retry
from .records import REFERENCE_BYTES, encode_reference

if TYPE_CHECKING:
    from ..horizon.client import HorizonClient

logger = logging.getLogger("tftpayouts.payouts.history")

# Payouts are always plain payments with a hash memo
PAYOUT_OPERATION_TYPE = "payment"
PAYOUT_MEMO_TYPE = "hash"


class HistoryIndex:
    """
    Builds the set of references used by past payouts of an account.

    Example:
        index = HistoryIndex(client, TFT_ISSUER)
        known = index.build()

        if record.key in known:
            ...  # already paid
    """

    def __init__(
        self,
        client: "HorizonClient",
        account: str,
        page_limit: int = HORIZON_PAGE_LIMIT,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            client: Anything with list_payments(account, cursor, limit)
            account: The issuing account whose outgoing payouts to index
            page_limit: Records requested per page
            retry_policy: Retry policy for 5xx responses
            sleep: Sleep function used between retries
        """
        self.client = client
        self.account = account
        self.page_limit = page_limit
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    def build(self) -> FrozenSet[str]:
        """
        Walk the full payment history and collect payout references.

        Returns:
            Frozen set of lowercase hex references

        Raises:
            LedgerQueryError: If the history cannot be read
        """
        references: Set[str] = set()
        cursor = ""
        pages = 0

        while True:
            page = self._fetch_page(cursor)
            if not page:
                break
            pages += 1

            for record in page:
                reference = self._payout_reference(record)
                if reference is not None:
                    references.add(reference)

            cursor = page[-1].paging_token

            if len(page) < self.page_limit:
                break

        logger.info(
            f"Indexed {len(references)} payout references from {pages} pages of {self.account} history"
        )
        return frozenset(references)

    def _fetch_page(self, cursor: str):
        """Fetch one page, retrying server errors."""
        try:
            page = call_with_retry(
                self.client.list_payments,
                self.account,
                cursor,
                self.page_limit,
                policy=self.retry_policy,
                context=f"payment history of {self.account}",
                sleep=self._sleep,
            )
        except HorizonError as e:
            logger.error(f"Failed to list payments after cursor {cursor!r}: {e}")
            raise LedgerQueryError(f"Failed to list known memos: {e}") from e
        except HorizonTransportError as e:
            raise LedgerQueryError(f"Failed to reach Horizon: {e}") from e
        except RetriesExhaustedError as e:
            raise LedgerQueryError(str(e)) from e

        logger.debug(f"Fetched {len(page)} payment records after cursor {cursor!r}")
        return page

    def _payout_reference(self, record: PaymentRecord) -> Optional[str]:
        """Reference of a past payout, or None if the record is not one."""
        if record.type != PAYOUT_OPERATION_TYPE:
            return None
        if record.source != self.account:
            return None
        if record.memo_type != PAYOUT_MEMO_TYPE:
            return None

        if not record.memo:
            raise LedgerQueryError(
                f"Missing hash memo in transaction {record.transaction_hash}"
            )
        try:
            raw = base64.b64decode(record.memo, validate=True)
        except (binascii.Error, ValueError) as e:
            raise LedgerQueryError(
                f"Undecodable memo {record.memo!r} in transaction {record.transaction_hash}"
            ) from e
        if len(raw) != REFERENCE_BYTES:
            raise LedgerQueryError(
                f"Undecodable memo {record.memo!r} in transaction {record.transaction_hash}: "
                f"{len(raw)} bytes, expected {REFERENCE_BYTES}"
            )
        return encode_reference(raw)


def build_history_index(
    client: "HorizonClient",
    account: str,
    page_limit: int = HORIZON_PAGE_LIMIT,
    retry_policy: Optional[RetryPolicy] = None,
) -> FrozenSet[str]:
    """
    Convenience function to build the history index of an account.

    Args:
        client: Horizon client
        account: Issuing account
        page_limit: Records requested per page
        retry_policy: Retry policy for 5xx responses

    Returns:
        Frozen set of lowercase hex references
    """
    return HistoryIndex(client, account, page_limit, retry_policy).build()
