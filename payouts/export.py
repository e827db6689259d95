from datetime import datetime, timedelta
from typing import Optional, Sequence

from payouts.errors import ConfigurationError

EXPORT_PERIOD_DAYS: dict[str, Optional[int]] = {
    "all": None,
    "week": 7,
    "month": 30,
    "3months": 90,
}

DEFAULT_COLUMNS = (
    "transaction_id",
    "date",
    "customer_name",
    "amount",
    "fees",
    "net_earnings",
)

_COLUMN_GETTERS = {
    "id": lambda t: t.id,
    "transaction_id": lambda t: t.transaction_id,
    "type": lambda t: t.type,
    "reference_id": lambda t: getattr(t, "booking_id", None) or getattr(t, "order_id", None),
    "listing_name": lambda t: t.listing_name,
    "date": lambda t: t.date.isoformat(),
    "customer_name": lambda t: t.customer_name or "",
    "status": lambda t: t.status.value,
    "amount": lambda t: str(t.amount),
    "platform_fee": lambda t: str(t.platform_fee),
    "payment_processing_fee": lambda t: str(t.payment_processing_fee),
    "transaction_fee": lambda t: str(t.transaction_fee),
    "fees": lambda t: str(t.total_fees),
    "net_earnings": lambda t: str(t.net_to_seller),
    "payout_id": lambda t: t.payout_id or "",
}


def select_for_export(
    transactions,
    period: str,
    now: datetime,
    columns: Optional[Sequence[str]] = None,
) -> list[dict[str, Optional[str]]]:
    """Rows and columns an export renderer should write, newest first."""
    if period not in EXPORT_PERIOD_DAYS:
        raise ConfigurationError(f"Unknown export period '{period}'")
    columns = tuple(columns or DEFAULT_COLUMNS)
    unknown = [c for c in columns if c not in _COLUMN_GETTERS]
    if unknown:
        raise ConfigurationError(f"Unknown export column(s): {', '.join(unknown)}")

    days = EXPORT_PERIOD_DAYS[period]
    rows = [
        t for t in transactions
        if days is None or t.date >= now - timedelta(days=days)
    ]
    rows.sort(key=lambda t: t.date, reverse=True)
    return [{c: _COLUMN_GETTERS[c](t) for c in columns} for t in rows]
