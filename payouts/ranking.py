from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional

from payouts.models import ListingPerformance, TransactionStatus


def rank_listings(
    transactions,
    seller_id: str,
    owner_of: Callable[[str], Optional[str]],
    limit: Optional[int] = None,
) -> list[ListingPerformance]:
    """Listings of one seller ranked by net earnings.

    Ties fall back to transaction count, then listing id. Failed
    transactions earned nothing and are skipped.
    """
    groups: dict[str, list] = {}
    for txn in transactions:
        if txn.status == TransactionStatus.FAILED or owner_of(txn.listing_id) != seller_id:
            continue
        groups.setdefault(txn.listing_id, []).append(txn)

    ranked = []
    for listing_id, rows in groups.items():
        total = sum((t.net_to_seller for t in rows), Decimal("0.00"))
        ranked.append(ListingPerformance(
            listing_id=listing_id,
            listing_name=rows[-1].listing_name,
            transaction_count=len(rows),
            total_earnings=total,
            average_transaction=(total / len(rows)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        ))

    ranked.sort(key=lambda p: (-p.total_earnings, -p.transaction_count, p.listing_id))
    return ranked[:limit] if limit is not None else ranked
