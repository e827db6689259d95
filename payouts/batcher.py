"""
Payout batching: sweeps settled, unpaid transactions into PayoutRecords.

Schedule mode pays everything settled by each 1st (and 15th, for
bi-monthly) of the month. Threshold mode replays transactions in the order
they became available and closes a batch as soon as the running net total
reaches the minimum, never letting a batch exceed the optional maximum.
"""

import logging
from collections import deque
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterator, Optional
from uuid import uuid4

from pydantic import BaseModel

from payouts.clock import Clock
from payouts.config import DEFAULT_FEE_SCHEDULE, FeeSchedule
from payouts.errors import ConfigurationError, DoubleAssignmentError, IneligibleTransactionError
from payouts.fees import withdrawal_fee
from payouts.models import (
    AccountDetails,
    PayoutConfiguration,
    PayoutMethod,
    PayoutRecord,
    ScheduleFrequency,
    Transaction,
    TransactionStatus,
)
from payouts.store import TransactionStore

logger = logging.getLogger(__name__)

_ZERO = Decimal("0.00")

SCHEDULE_DAYS = {
    ScheduleFrequency.BI_MONTHLY: (1, 15),
    ScheduleFrequency.MONTHLY: (1,),
}


class BatchResult(BaseModel):
    records: list[PayoutRecord]
    transactions: list[Transaction]   # stamped copies of the batched transactions
    carried_over: list[str]           # eligible, waiting for a later batch
    held: list[str]                   # net alone exceeds threshold_maximum


def validate_config(config: PayoutConfiguration) -> PayoutMethod:
    try:
        method = PayoutMethod(config.method)
    except ValueError:
        raise ConfigurationError(f"Unknown payout method '{config.method}'") from None

    if method == PayoutMethod.SCHEDULE:
        try:
            ScheduleFrequency(config.schedule_frequency)
        except ValueError:
            raise ConfigurationError(
                f"Unknown schedule frequency '{config.schedule_frequency}'"
            ) from None

    if config.threshold_minimum < 0:
        raise ConfigurationError("threshold_minimum must not be negative")
    if config.threshold_maximum is not None and config.threshold_maximum < config.threshold_minimum:
        raise ConfigurationError(
            f"threshold_maximum {config.threshold_maximum} is below "
            f"threshold_minimum {config.threshold_minimum}"
        )
    return method


def is_eligible(txn, now: datetime) -> bool:
    return (
        txn.status == TransactionStatus.COMPLETED
        and txn.available_date is not None
        and txn.available_date <= now
        and txn.payout_id is None
    )


def eligible_transactions(transactions, now: datetime) -> list:
    """Eligible transactions in arrival order (available date, then input order)."""
    return sorted(
        (t for t in transactions if is_eligible(t, now)),
        key=lambda t: t.available_date,
    )


def schedule_dates(frequency: ScheduleFrequency, start: datetime, end: datetime) -> Iterator[datetime]:
    """Scheduled payout instants falling in [start, end]."""
    days = SCHEDULE_DAYS[frequency]
    year, month = start.year, start.month
    while True:
        for day in days:
            at = datetime(year, month, day, tzinfo=end.tzinfo)
            if at > end:
                return
            if at >= start:
                yield at
        month += 1
        if month > 12:
            year, month = year + 1, 1


def next_payout_date(config: PayoutConfiguration, now: datetime) -> Optional[datetime]:
    """Next scheduled payout after today; None in threshold mode."""
    if validate_config(config) == PayoutMethod.THRESHOLD:
        return None
    frequency = ScheduleFrequency(config.schedule_frequency)
    tomorrow = datetime(now.year, now.month, now.day, tzinfo=now.tzinfo) + timedelta(days=1)
    return next(schedule_dates(frequency, tomorrow, tomorrow + timedelta(days=32)))


# ── batch formation ──────────────────────────────────────────────────────────

def _schedule_batches(ordered: list, frequency: ScheduleFrequency, now: datetime):
    if not ordered:
        return [], []
    remaining = list(ordered)
    batches = []
    for at in schedule_dates(frequency, ordered[0].available_date, now):
        members = [t for t in remaining if t.available_date <= at]
        if members:
            batches.append((at, members))
            remaining = [t for t in remaining if t.available_date > at]
    return batches, remaining


def _threshold_batches(ordered: list, minimum: Decimal, maximum: Optional[Decimal]):
    held = [t for t in ordered if maximum is not None and t.net_to_seller > maximum]
    held_ids = {t.id for t in held}
    queue = deque(t for t in ordered if t.id not in held_ids)
    position = {t.id: i for i, t in enumerate(ordered)}

    batches = []
    while queue:
        batch, total, deferred = [], _ZERO, []
        closed = False
        while queue:
            txn = queue.popleft()
            if maximum is not None and total + txn.net_to_seller > maximum:
                # never split; try it again in the next batch
                deferred.append(txn)
                continue
            batch.append(txn)
            total += txn.net_to_seller
            if total >= minimum:
                # transactions that matured at the same instant go out together
                while queue and queue[0].available_date == txn.available_date:
                    nxt = queue.popleft()
                    if maximum is not None and total + nxt.net_to_seller > maximum:
                        deferred.append(nxt)
                        continue
                    batch.append(nxt)
                    total += nxt.net_to_seller
                closed = True
                break
        if not closed:
            leftover = sorted(batch + deferred, key=lambda t: position[t.id])
            return batches, leftover, held
        batches.append(batch)
        queue = deque(deferred + list(queue))
    return batches, [], held


def _pack_partial(leftover: list, maximum: Optional[Decimal]) -> list:
    chunks, chunk, total = [], [], _ZERO
    for txn in leftover:
        if chunk and maximum is not None and total + txn.net_to_seller > maximum:
            chunks.append(chunk)
            chunk, total = [], _ZERO
        chunk.append(txn)
        total += txn.net_to_seller
    if chunk:
        chunks.append(chunk)
    return chunks


def _stamp(txn, payout_id: str):
    if txn.payout_id is not None:
        raise DoubleAssignmentError(
            f"Transaction {txn.id} already belongs to payout {txn.payout_id}"
        )
    return txn.model_copy(update={"payout_id": payout_id})


def form_batches(
    transactions,
    config: PayoutConfiguration,
    now: datetime,
    *,
    schedule: Optional[FeeSchedule] = None,
    seller_id: Optional[str] = None,
    account: Optional[AccountDetails] = None,
    id_factory: Optional[Callable[[], str]] = None,
    flush_partial: bool = False,
) -> BatchResult:
    """Group eligible transactions into payouts without touching any store.

    ``flush_partial`` (threshold mode only) pays out whatever is left below
    the minimum as a final batch flagged ``is_partial``.
    """
    method = validate_config(config)
    sched = schedule or DEFAULT_FEE_SCHEDULE
    account = account or AccountDetails()
    new_id = id_factory or (lambda: f"PO-{uuid4().hex[:8].upper()}")
    ordered = eligible_transactions(transactions, now)

    planned: list[tuple[datetime, list, bool]] = []
    held: list = []
    if method == PayoutMethod.SCHEDULE:
        dated, leftover = _schedule_batches(
            ordered, ScheduleFrequency(config.schedule_frequency), now
        )
        planned = [(at, members, False) for at, members in dated]
    else:
        batches, leftover, held = _threshold_batches(
            ordered, config.threshold_minimum, config.threshold_maximum
        )
        initiated = None
        for members in batches:
            closed_at = max(t.available_date for t in members)
            initiated = closed_at if initiated is None else max(initiated, closed_at)
            planned.append((initiated, members, False))
        if flush_partial and leftover:
            for members in _pack_partial(leftover, config.threshold_maximum):
                planned.append((now, members, True))
            leftover = []
        for txn in held:
            logger.warning(
                "Transaction %s (net %s) exceeds threshold maximum %s; held for manual payout",
                txn.id, txn.net_to_seller, config.threshold_maximum,
            )

    records: list[PayoutRecord] = []
    stamped: list = []
    seen: set[str] = set()
    for initiated_date, members, partial in planned:
        payout_id = new_id()
        for txn in members:
            if txn.id in seen:
                raise DoubleAssignmentError(f"Transaction {txn.id} placed in two batches")
            seen.add(txn.id)
            stamped.append(_stamp(txn, payout_id))
        amount = sum((t.net_to_seller for t in members), _ZERO)
        fee = withdrawal_fee(amount, sched)
        records.append(PayoutRecord(
            id=payout_id,
            seller_id=seller_id,
            initiated_date=initiated_date,
            amount=amount,
            withdrawal_fee=fee,
            net_amount=amount - fee,
            transaction_ids=tuple(t.id for t in members),
            account_details=account,
            is_partial=partial,
        ))

    order = sorted(range(len(records)), key=lambda i: records[i].initiated_date)
    records = [records[i] for i in order]
    logger.info(
        "Formed %d payout(s) from %d eligible transaction(s), %d carried over",
        len(records), len(ordered), len(leftover),
    )
    return BatchResult(
        records=records,
        transactions=stamped,
        carried_over=[t.id for t in leftover],
        held=[t.id for t in held],
    )


def run_payouts(
    store: TransactionStore,
    seller_id: str,
    config: PayoutConfiguration,
    clock: Clock,
    account: Optional[AccountDetails] = None,
    flush_partial: bool = False,
) -> list[PayoutRecord]:
    """Batch one seller's settled transactions and commit them atomically.

    The payouts go to ``account``, or to the account the seller has on file.
    """
    validate_config(config)
    account = account or store.payout_account(seller_id)
    if account is None:
        raise ConfigurationError(f"Seller '{seller_id}' has no payout account on file")
    now = clock.now()
    version, snapshot = store.versioned_snapshot()
    owned = [t for t in snapshot if store.owner_of(t.listing_id) == seller_id]
    result = form_batches(
        owned,
        config,
        now,
        schedule=store.schedule,
        seller_id=seller_id,
        account=account,
        id_factory=store.next_payout_id,
        flush_partial=flush_partial,
    )
    try:
        store.commit_payouts(result.records, expected_version=version, now=now)
    except (DoubleAssignmentError, IneligibleTransactionError):
        logger.error("Payout run for seller %s aborted; no payouts committed", seller_id, exc_info=True)
        raise
    return result.records
