"""
Tests for tftpayouts/payouts/history.py

Tests building the index of already paid references.
"""

import base64

import pytest
from unittest.mock import Mock

from tftpayouts.errors import LedgerQueryError
from tftpayouts.horizon import HorizonError, HorizonTransportError, PaymentRecord, RetryPolicy
from tftpayouts.payouts.history import HistoryIndex, build_history_index


# ============================================================================
# TEST DATA
# ============================================================================

ISSUER = "GBOVQKJYHXRR3DX6NOX2RRYFRCUMSADGDESTDNBDS6CDVLGVESRTAC47"
OTHER = "GOTHERACCOUNTXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXX"


def hash_memo(fill: int) -> str:
    """Base64 of a 32 byte memo filled with one byte value."""
    return base64.b64encode(bytes([fill]) * 32).decode()


def ref(fill: int) -> str:
    return (bytes([fill]) * 32).hex()


def payout(token: int, fill: int, source: str = ISSUER, memo_type: str = "hash", op_type: str = "payment"):
    """Create a payment record as returned by the Horizon client."""
    return PaymentRecord(
        paging_token=str(token),
        type=op_type,
        source=source,
        memo_type=memo_type,
        memo=hash_memo(fill) if memo_type == "hash" else "text memo",
        transaction_hash=f"{token:064x}",
    )


def create_mock_client(pages):
    """Create a mock client returning the given pages in order."""
    client = Mock()
    client.list_payments.side_effect = list(pages)
    return client


# ============================================================================
# HISTORY INDEX TESTS
# ============================================================================

class TestHistoryIndex:
    """Tests for HistoryIndex."""

    def test_empty_history(self):
        """Test an account without payments gives an empty index."""
        client = create_mock_client([[]])
        index = HistoryIndex(client, ISSUER).build()

        assert index == frozenset()
        client.list_payments.assert_called_once_with(ISSUER, "", 200)

    def test_collects_hash_memos(self):
        """Test hash memos of outgoing payments are collected as hex."""
        client = create_mock_client([[payout(1, 0x01), payout(2, 0xAB)]])
        index = HistoryIndex(client, ISSUER).build()

        assert index == {ref(0x01), ref(0xAB)}
        assert isinstance(index, frozenset)

    def test_skips_incoming_payments(self):
        """Test payments not sent by the issuer are ignored."""
        client = create_mock_client([[payout(1, 0x01, source=OTHER), payout(2, 0x02)]])
        index = HistoryIndex(client, ISSUER).build()

        assert index == {ref(0x02)}

    def test_skips_other_memo_types(self):
        """Test payments with non-hash memos are ignored."""
        client = create_mock_client([[
            payout(1, 0x01, memo_type="text"),
            payout(2, 0x02, memo_type="none"),
            payout(3, 0x03),
        ]])
        index = HistoryIndex(client, ISSUER).build()

        assert index == {ref(0x03)}

    def test_skips_records_without_transaction(self):
        """Test records without a joined transaction are ignored."""
        record = PaymentRecord(paging_token="1", type="payment", source=ISSUER)
        client = create_mock_client([[record]])

        assert HistoryIndex(client, ISSUER).build() == frozenset()

    def test_skips_non_payment_operations(self):
        """Test other operation types are ignored."""
        client = create_mock_client([[payout(1, 0x01, op_type="create_account"), payout(2, 0x02)]])
        index = HistoryIndex(client, ISSUER).build()

        assert index == {ref(0x02)}

    def test_paginates_with_cursor(self):
        """Test full pages continue from the last paging token."""
        page1 = [payout(1, 0x01), payout(2, 0x02)]
        page2 = [payout(3, 0x03), payout(4, 0x04, op_type="create_account")]
        page3 = []
        client = create_mock_client([page1, page2, page3])

        index = HistoryIndex(client, ISSUER, page_limit=2).build()

        assert index == {ref(0x01), ref(0x02), ref(0x03)}
        cursors = [c.args[1] for c in client.list_payments.call_args_list]
        assert cursors == ["", "2", "4"]

    def test_short_page_is_last(self):
        """Test a page shorter than the limit ends pagination."""
        client = create_mock_client([[payout(1, 0x01), payout(2, 0x02)], [payout(3, 0x03)]])

        index = HistoryIndex(client, ISSUER, page_limit=2).build()

        assert index == {ref(0x01), ref(0x02), ref(0x03)}
        assert client.list_payments.call_count == 2

    def test_duplicate_memos_collapse(self):
        """Test the same memo paid twice appears once."""
        client = create_mock_client([[payout(1, 0x05), payout(2, 0x05)]])
        assert HistoryIndex(client, ISSUER).build() == {ref(0x05)}

    def test_retries_server_errors(self):
        """Test 5xx responses are retried after the backoff."""
        client = create_mock_client([HorizonError(500), HorizonError(503), [payout(1, 0x01)]])
        sleep = Mock()

        index = HistoryIndex(client, ISSUER, sleep=sleep).build()

        assert index == {ref(0x01)}
        assert client.list_payments.call_count == 3
        sleep.assert_called_with(1.0)

    def test_client_error_is_fatal(self):
        """Test non-5xx responses abort the index build."""
        client = create_mock_client([HorizonError(400, "Bad Request")])

        with pytest.raises(LedgerQueryError, match="Failed to list known memos"):
            HistoryIndex(client, ISSUER, sleep=Mock()).build()

    def test_error_after_first_page_is_fatal(self):
        """Test a failure on a later page aborts too."""
        client = create_mock_client([[payout(1, 0x01), payout(2, 0x02)], HorizonError(404)])

        with pytest.raises(LedgerQueryError):
            HistoryIndex(client, ISSUER, page_limit=2, sleep=Mock()).build()

    def test_transport_error_is_fatal(self):
        """Test transport failures abort the index build."""
        client = create_mock_client([HorizonTransportError("dns failure")])

        with pytest.raises(LedgerQueryError, match="dns failure"):
            HistoryIndex(client, ISSUER).build()

    def test_bounded_retries_exhausted(self):
        """Test a bounded retry policy turns into a LedgerQueryError."""
        client = Mock()
        client.list_payments.side_effect = HorizonError(500)

        with pytest.raises(LedgerQueryError, match="giving up"):
            HistoryIndex(
                client, ISSUER, retry_policy=RetryPolicy(max_retries=2), sleep=Mock()
            ).build()
        assert client.list_payments.call_count == 3

    def test_undecodable_memo_is_fatal(self):
        """Test a corrupt base64 memo aborts the index build."""
        record = PaymentRecord(
            paging_token="1", type="payment", source=ISSUER, memo_type="hash", memo="!!not base64!!"
        )
        client = create_mock_client([[record]])

        with pytest.raises(LedgerQueryError, match="Undecodable memo"):
            HistoryIndex(client, ISSUER).build()

    def test_missing_hash_memo_is_fatal(self):
        """Test a hash memo record without memo content aborts the index build."""
        record = PaymentRecord(
            paging_token="1", type="payment", source=ISSUER, memo_type="hash", memo=None,
            transaction_hash="abc123",
        )
        client = create_mock_client([[record]])

        with pytest.raises(LedgerQueryError, match="Missing hash memo in transaction abc123"):
            HistoryIndex(client, ISSUER).build()

    def test_short_memo_is_fatal(self):
        """Test a memo that is not 32 bytes never enters the index."""
        record = PaymentRecord(
            paging_token="1", type="payment", source=ISSUER, memo_type="hash",
            memo=base64.b64encode(b"\x01" * 8).decode(),
        )
        client = create_mock_client([[record]])

        with pytest.raises(LedgerQueryError, match="expected 32"):
            HistoryIndex(client, ISSUER).build()


class TestBuildHistoryIndex:
    """Tests for the build_history_index convenience function."""

    def test_convenience_function(self):
        client = create_mock_client([[payout(1, 0x07)]])
        assert build_history_index(client, ISSUER) == {ref(0x07)}
