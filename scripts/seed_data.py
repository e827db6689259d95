"""
Deterministic test-data generator.

Produces, relative to ``now``:
  - 2 sellers owning 6 listings (services and products), each with a
    payout account on file
  - 160 transactions spread over the last 90 days
    - ~75 % completed  (fulfilled 0-5 days after payment)
    - ~10 % processing
    - ~10 % pending
    - ~5  % failed
  - 12 confirmed bookings scheduled over the next 30 days
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from payouts.models import AccountDetails, BookingStatus, ConfirmedBooking, TransactionStatus
from payouts.store import TransactionStore

logger = logging.getLogger(__name__)

SEED = 42
HISTORY_DAYS = 90

# (listing_id, seller_id, name, kind, price range)
LISTINGS = [
    ("L-001", "S-001", "Deep Tissue Massage",    "service", (60, 180)),
    ("L-002", "S-001", "Bridal Makeup Session",  "service", (120, 450)),
    ("L-003", "S-001", "Aromatherapy Oil Set",   "product", (15, 60)),
    ("L-004", "S-002", "Home Deep Cleaning",     "service", (80, 300)),
    ("L-005", "S-002", "Window Washing",         "service", (40, 120)),
    ("L-006", "S-002", "Eco Cleaning Kit",       "product", (10, 45)),
]

CUSTOMERS = ["Ava Reyes", "Liam Chen", "Maya Patel", "Noah Okafor", "Sofia Rossi", "Ethan Kim"]

PAYOUT_ACCOUNTS = {
    "S-001": AccountDetails(bank_name="First Harbor Bank", last4="4821"),
    "S-002": AccountDetails(email="payouts@sparkle-cleaning.example"),
}


def _rand_dt(rng: random.Random, lo: datetime, hi: datetime) -> datetime:
    delta = hi - lo
    secs = rng.randint(0, int(delta.total_seconds()))
    return lo + timedelta(seconds=secs)


def _amount(rng: random.Random, lo: int, hi: int) -> Decimal:
    return Decimal(str(round(rng.uniform(lo, hi), 2)))


def seed(store: TransactionStore, now: Optional[datetime] = None) -> None:
    rng = random.Random(SEED)
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=HISTORY_DAYS)

    # ── listings ─────────────────────────────────────────────────────────────
    for listing_id, seller_id, *_ in LISTINGS:
        store.add_listing(listing_id, seller_id)
    for seller_id, account in PAYOUT_ACCOUNTS.items():
        store.set_payout_account(seller_id, account)

    # ── transactions ─────────────────────────────────────────────────────────
    total = 160
    for n in range(1, total + 1):
        listing_id, _, name, kind, (lo, hi) = rng.choice(LISTINGS)
        paid_at = _rand_dt(rng, start, now)
        ref = {"booking_id": f"B-{n:04d}"} if kind == "service" else {"order_id": f"O-{n:04d}"}
        txn = store.record_payment(
            id=f"FT-{n:04d}",
            amount=_amount(rng, lo, hi),
            date=paid_at,
            listing_id=listing_id,
            listing_name=name,
            category="Service Bookings" if kind == "service" else "Product Sales",
            customer_name=rng.choice(CUSTOMERS),
            **ref,
        )

        roll = rng.random()
        if roll < 0.10:
            continue  # still pending
        if roll < 0.15:
            store.advance_status(txn.id, TransactionStatus.FAILED, paid_at)
            continue
        store.advance_status(txn.id, TransactionStatus.PROCESSING, paid_at)
        fulfilled_at = paid_at + timedelta(days=rng.randint(0, 5))
        if roll < 0.25 or fulfilled_at > now:
            continue  # still processing
        store.advance_status(txn.id, TransactionStatus.COMPLETED, fulfilled_at)

    # ── confirmed future bookings ────────────────────────────────────────────
    services = [entry for entry in LISTINGS if entry[3] == "service"]
    for n in range(1, 13):
        listing_id, _, _, _, (lo, hi) = rng.choice(services)
        store.add_booking(ConfirmedBooking(
            booking_id=f"FB-{n:04d}",
            listing_id=listing_id,
            price=_amount(rng, lo, hi),
            status=BookingStatus.CONFIRMED,
            appointment_date=_rand_dt(rng, now + timedelta(hours=1), now + timedelta(days=30)),
        ))

    logger.info(
        "Seeded %d transactions and %d bookings for %d sellers",
        len(store.transactions), len(store.bookings), len(store.list_sellers()),
    )
