from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from payouts.config import FeeSchedule
from payouts.fees import compute_fees
from payouts.models import BookingStatus, ConfirmedBooking, ProjectionResult


def project(
    bookings: Iterable[ConfirmedBooking],
    now: datetime,
    listing_id: Optional[str] = None,
    schedule: Optional[FeeSchedule] = None,
) -> ProjectionResult:
    """Estimate net earnings from confirmed bookings that have not happened yet.

    Each booking is run through the same fee model used for settled
    transactions. The figure is only realised if every booking completes as
    scheduled; cancellations are not modelled.
    """
    upcoming = [
        b for b in bookings
        if b.status == BookingStatus.CONFIRMED
        and b.appointment_date > now
        and (listing_id is None or b.listing_id == listing_id)
    ]
    projected = sum(
        (compute_fees(b.price, schedule).net_to_seller for b in upcoming),
        Decimal("0.00"),
    )
    return ProjectionResult(projected_earnings=projected, upcoming_bookings=len(upcoming))
