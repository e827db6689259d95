"""
Unit tests for time-windowed financial summaries.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from payouts.fees import compute_fees
from payouts.models import BookingPayment, OrderPayment, TimeFilter, TransactionStatus
from payouts.summary import available_balance, pending_balance, summarize


NOW = datetime(2026, 3, 20, 12, 0, tzinfo=timezone.utc)


def txn(id, amount, days_ago, status=TransactionStatus.COMPLETED, kind="booking",
        available_days_ago=None, payout_id=None):
    fees = compute_fees(Decimal(str(amount)))
    date = NOW - timedelta(days=days_ago)
    fields = dict(
        id=id,
        transaction_id=f"TXN-{id}",
        amount=fees.gross_amount,
        date=date,
        platform_fee=fees.platform_fee,
        payment_processing_fee=fees.payment_processing_fee,
        transaction_fee=fees.transaction_fee,
        net_to_seller=fees.net_to_seller,
        status=status,
        listing_id="L-001",
        listing_name="Massage",
        payout_id=payout_id,
    )
    if status == TransactionStatus.COMPLETED:
        fields["completion_date"] = date
        available = NOW - timedelta(days=available_days_ago) if available_days_ago is not None else date
        fields["available_date"] = available
    if kind == "booking":
        return BookingPayment(booking_id=f"B-{id}", **fields)
    return OrderPayment(order_id=f"O-{id}", **fields)


class TestEmpty:
    def test_empty_all(self):
        result = summarize([], "all", NOW)
        assert result.total_revenue == Decimal("0.00")
        assert result.average_order_value == Decimal("0.00")
        assert result.revenue_growth == Decimal("0.0")
        assert result.completed_transactions == 0

    @pytest.mark.parametrize("time_filter", ["24h", "7d", "30d"])
    def test_empty_windows(self, time_filter):
        result = summarize([], time_filter, NOW)
        assert result.net_earnings == Decimal("0.00")


class TestTotals:
    def test_revenue_fees_and_net(self):
        rows = [txn("T1", 100, 1), txn("T2", 50, 2)]
        result = summarize(rows, TimeFilter.ALL, NOW)
        assert result.total_revenue == Decimal("150.00")
        assert result.total_fees == Decimal("9.20")     # 5.95 + 3.25
        assert result.net_earnings == Decimal("140.80")
        assert result.total_revenue == result.total_fees + result.net_earnings
        assert result.fee_breakdown.platform_fees == Decimal("3.75")
        assert result.fee_breakdown.payment_processing_fees == Decimal("4.95")
        assert result.fee_breakdown.transaction_fees == Decimal("0.50")

    def test_failed_transactions_excluded(self):
        rows = [txn("T1", 100, 1), txn("T2", 50, 1, status=TransactionStatus.FAILED)]
        result = summarize(rows, "all", NOW)
        assert result.total_revenue == Decimal("100.00")
        assert result.pending_earnings == Decimal("0.00")

    def test_average_order_value_over_completed(self):
        rows = [txn("T1", 100, 1), txn("T2", 50, 1, status=TransactionStatus.PROCESSING)]
        result = summarize(rows, "all", NOW)
        assert result.completed_transactions == 1
        assert result.average_order_value == Decimal("150.00")

    def test_no_completed_transactions_gives_zero_average(self):
        rows = [txn("T1", 100, 1, status=TransactionStatus.PENDING)]
        assert summarize(rows, "all", NOW).average_order_value == Decimal("0.00")

    def test_pending_and_available(self):
        rows = [
            txn("T1", 100, 10, available_days_ago=3),                 # settled
            txn("T2", 50, 10, available_days_ago=-2),                 # settles in 2 days
            txn("T3", 30, 10, available_days_ago=3, payout_id="PO-1"),  # already paid out
            txn("T4", 200, 1, status=TransactionStatus.PROCESSING),
        ]
        result = summarize(rows, "all", NOW)
        assert result.available_for_withdrawal == Decimal("94.05")
        assert result.pending_earnings == Decimal("188.65")
        assert available_balance(rows, NOW) == Decimal("94.05")
        assert pending_balance(rows) == Decimal("188.65")

    def test_revenue_by_category(self):
        rows = [txn("T1", 100, 1), txn("T2", 50, 1, kind="order"), txn("T3", 30, 1, kind="order")]
        result = summarize(rows, "all", NOW)
        assert result.revenue_by_category["Service Bookings"].count == 1
        products = result.revenue_by_category["Product Sales"]
        assert products.count == 2
        assert products.revenue == Decimal("80.00")
        assert products.net_earnings == Decimal("74.58")

    def test_monthly_target_passed_through(self):
        result = summarize([], "all", NOW, monthly_target=Decimal("8000.00"))
        assert result.monthly_target == Decimal("8000.00")


class TestTimeWindows:
    def test_cutoff_excludes_older_transactions(self):
        rows = [txn("T1", 100, 0.5), txn("T2", 50, 3), txn("T3", 30, 20), txn("T4", 200, 45)]
        assert summarize(rows, "24h", NOW).total_revenue == Decimal("100.00")
        assert summarize(rows, "7d", NOW).total_revenue == Decimal("150.00")
        assert summarize(rows, "30d", NOW).total_revenue == Decimal("180.00")
        assert summarize(rows, "all", NOW).total_revenue == Decimal("380.00")

    def test_growth_against_preceding_window(self):
        rows = [txn("T1", 100, 2), txn("T2", 50, 3), txn("T3", 100, 10)]
        # current 7d = 150, preceding 7d = 100
        assert summarize(rows, "7d", NOW).revenue_growth == Decimal("50.0")

    def test_negative_growth(self):
        rows = [txn("T1", 50, 2), txn("T2", 200, 10)]
        assert summarize(rows, "7d", NOW).revenue_growth == Decimal("-75.0")

    def test_growth_zero_without_preceding_transactions(self):
        rows = [txn("T1", 100, 2)]
        assert summarize(rows, "7d", NOW).revenue_growth == Decimal("0.0")

    def test_growth_zero_for_all(self):
        rows = [txn("T1", 100, 2), txn("T2", 100, 100)]
        assert summarize(rows, "all", NOW).revenue_growth == Decimal("0.0")


class TestDeterminism:
    def test_summarize_is_idempotent(self):
        rows = [txn("T1", 100, 1), txn("T2", 50, 9, status=TransactionStatus.PROCESSING)]
        snapshot = tuple(rows)
        first = summarize(snapshot, "30d", NOW)
        second = summarize(snapshot, "30d", NOW)
        assert first == second
        assert tuple(rows) == snapshot

    def test_unknown_filter_rejected(self):
        with pytest.raises(ValueError):
            summarize([], "90d", NOW)
