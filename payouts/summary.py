from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from payouts.config import DEFAULT_FEE_SCHEDULE
from payouts.models import (
    CategoryRevenue,
    FeeTotals,
    FinancialSummary,
    TimeFilter,
    TransactionStatus,
    TransactionType,
)

_ZERO = Decimal("0.00")
two_dp = Decimal("0.01")

WINDOW_DAYS: dict[TimeFilter, Optional[int]] = {
    TimeFilter.ALL: None,
    TimeFilter.LAST_24H: 1,
    TimeFilter.LAST_7D: 7,
    TimeFilter.LAST_30D: 30,
}

CATEGORY_LABELS = {
    TransactionType.BOOKING_PAYMENT.value: "Service Bookings",
    TransactionType.ORDER_PAYMENT.value: "Product Sales",
}


def _money(values: Iterable[Decimal]) -> Decimal:
    return sum(values, _ZERO).quantize(two_dp)


def _live(transactions) -> list:
    return [t for t in transactions if t.status != TransactionStatus.FAILED]


def _in_window(transactions, start: Optional[datetime], end: Optional[datetime]) -> list:
    return [
        t for t in transactions
        if (start is None or t.date >= start) and (end is None or t.date < end)
    ]


def revenue_growth(current_revenue: Decimal, previous_revenue: Decimal, had_previous: bool) -> Decimal:
    if not had_previous or previous_revenue == _ZERO:
        return Decimal("0.0")
    change = (current_revenue - previous_revenue) / previous_revenue * 100
    return change.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def available_balance(transactions, now: datetime) -> Decimal:
    """Net earnings that have settled and have not been swept into a payout."""
    return _money(
        t.net_to_seller for t in transactions
        if t.status == TransactionStatus.COMPLETED
        and t.available_date is not None
        and t.available_date <= now
        and t.payout_id is None
    )


def pending_balance(transactions) -> Decimal:
    return _money(
        t.net_to_seller for t in _live(transactions)
        if t.status != TransactionStatus.COMPLETED
    )


def summarize(
    transactions,
    time_filter: Union[TimeFilter, str],
    now: datetime,
    monthly_target: Optional[Decimal] = None,
) -> FinancialSummary:
    time_filter = TimeFilter(time_filter)
    target = DEFAULT_FEE_SCHEDULE.monthly_target if monthly_target is None else monthly_target
    all_live = _live(transactions)

    # ── 1. Current and preceding window ──────────────────────────────────────
    days = WINDOW_DAYS[time_filter]
    if days is None:
        current = all_live
        previous = []
    else:
        cutoff = now - timedelta(days=days)
        current = _in_window(all_live, cutoff, None)
        previous = _in_window(all_live, cutoff - timedelta(days=days), cutoff)

    # ── 2. Aggregate ─────────────────────────────────────────────────────────
    total_revenue = _money(t.amount for t in current)
    platform_fees = _money(t.platform_fee for t in current)
    processing_fees = _money(t.payment_processing_fee for t in current)
    transaction_fees = _money(t.transaction_fee for t in current)
    total_fees = platform_fees + processing_fees + transaction_fees
    completed = [t for t in current if t.status == TransactionStatus.COMPLETED]

    if completed:
        average_order_value = (total_revenue / len(completed)).quantize(two_dp, rounding=ROUND_HALF_UP)
    else:
        average_order_value = _ZERO

    by_category: dict[str, CategoryRevenue] = {}
    for type_value, label in CATEGORY_LABELS.items():
        rows = [t for t in current if t.type == type_value]
        by_category[label] = CategoryRevenue(
            count=len(rows),
            revenue=_money(t.amount for t in rows),
            net_earnings=_money(t.net_to_seller for t in rows),
        )

    return FinancialSummary(
        total_revenue=total_revenue,
        total_fees=total_fees,
        net_earnings=total_revenue - total_fees,
        pending_earnings=pending_balance(current),
        available_for_withdrawal=available_balance(current, now),
        completed_transactions=len(completed),
        average_order_value=average_order_value,
        revenue_growth=revenue_growth(
            total_revenue, _money(t.amount for t in previous), bool(previous)
        ),
        monthly_target=target,
        fee_breakdown=FeeTotals(
            platform_fees=platform_fees,
            payment_processing_fees=processing_fees,
            transaction_fees=transaction_fees,
        ),
        revenue_by_category=by_category,
    )
