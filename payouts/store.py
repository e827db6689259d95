import logging
import threading
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import TypeAdapter

from payouts.config import DEFAULT_FEE_SCHEDULE, FeeSchedule, load_fee_schedule
from payouts.errors import (
    DataInvariantError,
    DoubleAssignmentError,
    IneligibleTransactionError,
    InvalidStatusTransitionError,
    TransactionNotFoundError,
)
from payouts.fees import check_fee_identity, compute_fees
from payouts.models import (
    AccountDetails,
    BookingPayment,
    ConfirmedBooking,
    OrderPayment,
    PayoutRecord,
    Transaction,
    TransactionStatus,
)

logger = logging.getLogger(__name__)

_transaction_adapter = TypeAdapter(Transaction)

_ALLOWED_TRANSITIONS: dict[TransactionStatus, set[TransactionStatus]] = {
    TransactionStatus.PENDING: {TransactionStatus.PROCESSING, TransactionStatus.FAILED},
    TransactionStatus.PROCESSING: {TransactionStatus.COMPLETED, TransactionStatus.FAILED},
    TransactionStatus.COMPLETED: set(),
    TransactionStatus.FAILED: set(),
}


def validate_transaction(txn) -> None:
    check_fee_identity(txn)
    if txn.completion_date is not None and txn.completion_date < txn.date:
        raise DataInvariantError(f"Transaction {txn.id}: completion_date precedes date")
    if (
        txn.available_date is not None
        and txn.completion_date is not None
        and txn.available_date < txn.completion_date
    ):
        raise DataInvariantError(f"Transaction {txn.id}: available_date precedes completion_date")


class TransactionStore:
    """Append-only transaction log with listing ownership and payout history.

    Every write goes through one lock and bumps ``version``; readers take a
    ``snapshot()`` which never changes underneath them.
    """

    def __init__(self, schedule: Optional[FeeSchedule] = None) -> None:
        self.schedule = schedule or DEFAULT_FEE_SCHEDULE
        self.transactions: dict[str, Transaction] = {}
        self.listing_owners: dict[str, str] = {}
        self.bookings: dict[str, ConfirmedBooking] = {}
        self.payout_accounts: dict[str, AccountDetails] = {}
        self._payouts: list[PayoutRecord] = []
        self._lock = threading.Lock()
        self._version = 0
        self._payout_counter = 0

    # ── writes ────────────────────────────────────────────────────────────────

    def add_listing(self, listing_id: str, seller_id: str) -> None:
        with self._lock:
            self.listing_owners[listing_id] = seller_id

    def add_booking(self, booking: ConfirmedBooking) -> None:
        with self._lock:
            self.bookings[booking.booking_id] = booking

    def set_payout_account(self, seller_id: str, account: AccountDetails) -> None:
        with self._lock:
            self.payout_accounts[seller_id] = account

    def add_transaction(self, txn) -> Transaction:
        if isinstance(txn, dict):
            txn = _transaction_adapter.validate_python(txn)
        try:
            validate_transaction(txn)
        except DataInvariantError:
            logger.warning("Rejected transaction %s on ingestion", txn.id)
            raise
        with self._lock:
            if txn.id in self.transactions:
                raise DataInvariantError(f"Transaction '{txn.id}' already recorded")
            self.transactions[txn.id] = txn
            self._version += 1
        return txn

    def record_payment(
        self,
        *,
        id: str,
        amount: Decimal,
        date: datetime,
        listing_id: str,
        listing_name: str,
        booking_id: Optional[str] = None,
        order_id: Optional[str] = None,
        **extra,
    ) -> Transaction:
        """Create a transaction for a paid booking or order, freezing its fees."""
        if (booking_id is None) == (order_id is None):
            raise DataInvariantError("Exactly one of booking_id / order_id must be set")
        fees = compute_fees(amount, self.schedule)
        fields = dict(
            id=id,
            transaction_id=extra.pop("transaction_id", f"TXN-{id}"),
            amount=fees.gross_amount,
            date=date,
            platform_fee=fees.platform_fee,
            payment_processing_fee=fees.payment_processing_fee,
            transaction_fee=fees.transaction_fee,
            net_to_seller=fees.net_to_seller,
            listing_id=listing_id,
            listing_name=listing_name,
            **extra,
        )
        if booking_id is not None:
            txn = BookingPayment(booking_id=booking_id, **fields)
        else:
            txn = OrderPayment(order_id=order_id, **fields)
        return self.add_transaction(txn)

    def advance_status(self, txn_id: str, status: TransactionStatus, at: datetime) -> Transaction:
        with self._lock:
            txn = self._get_or_raise(txn_id)
            if status not in _ALLOWED_TRANSITIONS[txn.status]:
                raise InvalidStatusTransitionError(
                    f"Cannot move transaction {txn_id} from {txn.status.value} to {status.value}"
                )
            update: dict = {"status": status}
            if status == TransactionStatus.COMPLETED:
                if at < txn.date:
                    raise DataInvariantError(
                        f"Transaction {txn_id}: completion at {at.isoformat()} precedes "
                        f"payment date {txn.date.isoformat()}"
                    )
                update["completion_date"] = at
                update["available_date"] = at + timedelta(days=self.schedule.settlement_delay_days)
            updated = txn.model_copy(update=update)
            self.transactions[txn_id] = updated
            self._version += 1
        return updated

    def next_payout_id(self) -> str:
        with self._lock:
            self._payout_counter += 1
            return f"PO-{self._payout_counter:04d}"

    def commit_payouts(
        self,
        records: Iterable[PayoutRecord],
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[PayoutRecord]:
        """Stamp payout ids onto transactions, all or nothing.

        Every assignment is checked before any is applied; on conflict the
        store is left untouched and DoubleAssignmentError is raised. Members
        must be completed and settled (available by ``now``, when given) and
        owned by the record's seller, otherwise IneligibleTransactionError.
        """
        records = list(records)
        with self._lock:
            if expected_version is not None and expected_version != self._version:
                raise DoubleAssignmentError(
                    f"Store changed during batching (expected version {expected_version}, "
                    f"found {self._version})"
                )
            claimed: dict[str, str] = {}
            for record in records:
                for txn_id in record.transaction_ids:
                    txn = self._get_or_raise(txn_id)
                    if txn.payout_id is not None:
                        raise DoubleAssignmentError(
                            f"Transaction {txn_id} already belongs to payout {txn.payout_id}"
                        )
                    if txn_id in claimed:
                        raise DoubleAssignmentError(
                            f"Transaction {txn_id} appears in payouts {claimed[txn_id]} and {record.id}"
                        )
                    self._check_payable(txn, record, now)
                    claimed[txn_id] = record.id

            for txn_id, payout_id in claimed.items():
                self.transactions[txn_id] = self.transactions[txn_id].model_copy(
                    update={"payout_id": payout_id}
                )
            self._payouts.extend(records)
            if records:
                self._version += 1
        return records

    def clear(self) -> None:
        with self._lock:
            self.transactions.clear()
            self.listing_owners.clear()
            self.bookings.clear()
            self.payout_accounts.clear()
            self._payouts.clear()
            self._version += 1

    # ── reads ─────────────────────────────────────────────────────────────────

    @property
    def version(self) -> int:
        return self._version

    def snapshot(self) -> tuple[Transaction, ...]:
        with self._lock:
            return tuple(self.transactions.values())

    def versioned_snapshot(self) -> tuple[int, tuple[Transaction, ...]]:
        with self._lock:
            return self._version, tuple(self.transactions.values())

    def get_transaction(self, txn_id: str) -> Optional[Transaction]:
        return self.transactions.get(txn_id)

    def owner_of(self, listing_id: str) -> Optional[str]:
        return self.listing_owners.get(listing_id)

    def get_transactions_for_seller(self, seller_id: str) -> list[Transaction]:
        return [t for t in self.snapshot() if self.owner_of(t.listing_id) == seller_id]

    def get_bookings_for_seller(self, seller_id: str) -> list[ConfirmedBooking]:
        with self._lock:
            bookings = list(self.bookings.values())
        return [b for b in bookings if self.owner_of(b.listing_id) == seller_id]

    def list_sellers(self) -> list[str]:
        return sorted(set(self.listing_owners.values()))

    def payout_account(self, seller_id: str) -> Optional[AccountDetails]:
        return self.payout_accounts.get(seller_id)

    def payouts(self, seller_id: Optional[str] = None) -> list[PayoutRecord]:
        with self._lock:
            records = list(self._payouts)
        if seller_id is None:
            return records
        return [p for p in records if p.seller_id == seller_id]

    def _get_or_raise(self, txn_id: str) -> Transaction:
        txn = self.transactions.get(txn_id)
        if txn is None:
            raise TransactionNotFoundError(f"Transaction '{txn_id}' not found")
        return txn

    def _check_payable(self, txn: Transaction, record: PayoutRecord, now: Optional[datetime]) -> None:
        if txn.status != TransactionStatus.COMPLETED or txn.available_date is None:
            raise IneligibleTransactionError(
                f"Transaction {txn.id} is {txn.status.value} and not settled; cannot join payout {record.id}"
            )
        if now is not None and txn.available_date > now:
            raise IneligibleTransactionError(
                f"Transaction {txn.id} is not available until {txn.available_date.isoformat()}"
            )
        if record.seller_id is not None and self.owner_of(txn.listing_id) != record.seller_id:
            raise IneligibleTransactionError(
                f"Transaction {txn.id} does not belong to seller {record.seller_id}"
            )


# module-level singleton used by the app
store = TransactionStore(load_fee_schedule())
