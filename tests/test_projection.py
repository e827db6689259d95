"""
Unit tests for projected earnings and listing performance ranking.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from payouts.config import FeeSchedule
from payouts.fees import compute_fees
from payouts.models import BookingPayment, BookingStatus, ConfirmedBooking, TransactionStatus
from payouts.projection import project
from payouts.ranking import rank_listings


NOW = datetime(2026, 3, 20, 12, 0, tzinfo=timezone.utc)


def booking(id, price, days_ahead, listing="L-001", status=BookingStatus.CONFIRMED):
    return ConfirmedBooking(
        booking_id=id,
        listing_id=listing,
        price=Decimal(str(price)),
        status=status,
        appointment_date=NOW + timedelta(days=days_ahead),
    )


class TestProjection:
    def test_uses_the_same_fee_model(self):
        result = project([booking("B1", 200, 5)], NOW)
        assert result.projected_earnings == compute_fees(Decimal("200")).net_to_seller
        assert result.projected_earnings == Decimal("188.65")
        assert result.upcoming_bookings == 1

    def test_only_future_confirmed_bookings(self):
        bookings = [
            booking("B1", 100, 2),
            booking("B2", 50, -1),                                  # already happened
            booking("B3", 30, 3, status=BookingStatus.CANCELLED),
            booking("B4", 30, 3, status=BookingStatus.PENDING),
            booking("B5", 50, 0),                                   # starts right now
        ]
        result = project(bookings, NOW)
        assert result.upcoming_bookings == 1
        assert result.projected_earnings == Decimal("94.05")

    def test_listing_filter(self):
        bookings = [booking("B1", 100, 2, "L-001"), booking("B2", 50, 2, "L-002")]
        result = project(bookings, NOW, listing_id="L-002")
        assert result.upcoming_bookings == 1
        assert result.projected_earnings == Decimal("46.75")

    def test_custom_fee_schedule(self):
        schedule = FeeSchedule(platform_fee_rate=Decimal("0.05"))
        result = project([booking("B1", 100, 2)], NOW, schedule=schedule)
        assert result.projected_earnings == Decimal("91.55")

    def test_no_bookings(self):
        result = project([], NOW)
        assert result.projected_earnings == Decimal("0.00")
        assert result.upcoming_bookings == 0


OWNERS = {"L-001": "S-001", "L-002": "S-001", "L-003": "S-001", "L-009": "S-002"}


def earned(id, listing, gross, status=TransactionStatus.COMPLETED):
    fees = compute_fees(Decimal(str(gross)))
    return BookingPayment(
        id=id,
        transaction_id=f"TXN-{id}",
        booking_id=f"B-{id}",
        amount=fees.gross_amount,
        date=NOW - timedelta(days=3),
        platform_fee=fees.platform_fee,
        payment_processing_fee=fees.payment_processing_fee,
        transaction_fee=fees.transaction_fee,
        net_to_seller=fees.net_to_seller,
        status=status,
        listing_id=listing,
        listing_name=f"Listing {listing}",
    )


class TestRanking:
    def test_sorted_by_total_earnings(self):
        rows = [
            earned("T1", "L-001", 50),
            earned("T2", "L-002", 100),
            earned("T3", "L-001", 30),
            earned("T4", "L-003", 200),
        ]
        ranked = rank_listings(rows, "S-001", OWNERS.get)
        assert [p.listing_id for p in ranked] == ["L-003", "L-002", "L-001"]
        top = ranked[0]
        assert top.total_earnings == Decimal("188.65")
        l1 = ranked[2]
        assert l1.transaction_count == 2
        assert l1.total_earnings == Decimal("74.58")
        assert l1.average_transaction == Decimal("37.29")

    def test_ties_broken_by_count_then_listing_id(self):
        rows = [
            earned("T1", "L-003", 100),
            earned("T2", "L-002", 100),
            earned("T3", "L-001", 50),
            earned("T4", "L-001", 50),
        ]
        ranked = rank_listings(rows, "S-001", OWNERS.get)
        # L-001 totals 93.50, below the two 94.05 listings
        assert [p.listing_id for p in ranked] == ["L-002", "L-003", "L-001"]

    def test_count_breaks_equal_totals(self):
        rows = [earned("T1", "L-002", 100), earned("T2", "L-001", 100)]
        rows = [rows[0], rows[1].model_copy(update={"net_to_seller": Decimal("47.00")}),
                earned("T3", "L-001", 50).model_copy(update={"net_to_seller": Decimal("47.05")})]
        ranked = rank_listings(rows, "S-001", OWNERS.get)
        assert [(p.listing_id, p.transaction_count) for p in ranked] == [("L-001", 2), ("L-002", 1)]

    def test_other_sellers_and_failed_excluded(self):
        rows = [
            earned("T1", "L-009", 500),
            earned("T2", "L-001", 100, status=TransactionStatus.FAILED),
            earned("T3", "L-002", 30),
        ]
        ranked = rank_listings(rows, "S-001", OWNERS.get)
        assert [p.listing_id for p in ranked] == ["L-002"]

    def test_limit(self):
        rows = [earned(f"T{i}", lid, 100) for i, lid in enumerate(["L-001", "L-002", "L-003"])]
        assert len(rank_listings(rows, "S-001", OWNERS.get, limit=2)) == 2

    def test_unknown_seller(self):
        assert rank_listings([earned("T1", "L-001", 100)], "S-404", OWNERS.get) == []
