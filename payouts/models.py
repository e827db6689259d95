from pydantic import BaseModel, ConfigDict, Field
from enum import Enum
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union


class TransactionType(str, Enum):
    BOOKING_PAYMENT = "booking_payment"
    ORDER_PAYMENT = "order_payment"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PayoutMethod(str, Enum):
    SCHEDULE = "schedule"
    THRESHOLD = "threshold"


class ScheduleFrequency(str, Enum):
    BI_MONTHLY = "bi-monthly"
    MONTHLY = "monthly"


class WithdrawalMethod(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    INSTANT = "instant"


class TimeFilter(str, Enum):
    ALL = "all"
    LAST_24H = "24h"
    LAST_7D = "7d"
    LAST_30D = "30d"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ── Transactions ─────────────────────────────────────────────────────────────

class FeeBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    gross_amount: Decimal
    platform_fee: Decimal
    payment_processing_fee: Decimal
    transaction_fee: Decimal
    net_to_seller: Decimal

    @property
    def total_fees(self) -> Decimal:
        return self.platform_fee + self.payment_processing_fee + self.transaction_fee


class _TransactionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    transaction_id: str
    amount: Decimal                        # gross charged to the customer
    date: datetime
    completion_date: Optional[datetime] = None
    available_date: Optional[datetime] = None
    platform_fee: Decimal
    payment_processing_fee: Decimal
    transaction_fee: Decimal
    net_to_seller: Decimal
    tax_amount: Optional[Decimal] = None   # collected, not owned by the seller
    status: TransactionStatus = TransactionStatus.PENDING
    listing_id: str
    listing_name: str
    payout_id: Optional[str] = None
    category: Optional[str] = None
    customer_name: Optional[str] = None

    @property
    def total_fees(self) -> Decimal:
        return self.platform_fee + self.payment_processing_fee + self.transaction_fee


class BookingPayment(_TransactionBase):
    type: Literal["booking_payment"] = "booking_payment"
    booking_id: str


class OrderPayment(_TransactionBase):
    type: Literal["order_payment"] = "order_payment"
    order_id: str


Transaction = Annotated[Union[BookingPayment, OrderPayment], Field(discriminator="type")]


# ── Payouts ──────────────────────────────────────────────────────────────────

class AccountDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    bank_name: Optional[str] = None
    last4: Optional[str] = None
    email: Optional[str] = None  # external account (e.g. PayPal)


class PayoutConfiguration(BaseModel):
    # plain strings: the batcher validates and reports ConfigurationError
    method: str = PayoutMethod.SCHEDULE.value
    schedule_frequency: Optional[str] = ScheduleFrequency.BI_MONTHLY.value
    threshold_minimum: Decimal = Decimal("10")
    threshold_maximum: Optional[Decimal] = None


class PayoutRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    seller_id: Optional[str] = None
    initiated_date: datetime
    completed_date: Optional[datetime] = None
    amount: Decimal
    withdrawal_fee: Decimal = Decimal("0.00")
    net_amount: Decimal
    transaction_ids: tuple[str, ...]
    status: PayoutStatus = PayoutStatus.PENDING
    account_details: AccountDetails = Field(default_factory=AccountDetails)
    is_partial: bool = False


class WithdrawalRequest(BaseModel):
    amount: Decimal
    method: str = WithdrawalMethod.STANDARD.value


class WithdrawalQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Decimal
    method: WithdrawalMethod
    fee: Decimal
    net_amount: Decimal
    available_after: Decimal


# ── Summaries ────────────────────────────────────────────────────────────────

class FeeTotals(BaseModel):
    platform_fees: Decimal
    payment_processing_fees: Decimal
    transaction_fees: Decimal


class CategoryRevenue(BaseModel):
    count: int
    revenue: Decimal
    net_earnings: Decimal


class FinancialSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_revenue: Decimal
    total_fees: Decimal
    net_earnings: Decimal
    pending_earnings: Decimal
    available_for_withdrawal: Decimal
    completed_transactions: int
    average_order_value: Decimal
    revenue_growth: Decimal          # percent, 1 dp
    monthly_target: Decimal
    fee_breakdown: FeeTotals
    revenue_by_category: dict[str, CategoryRevenue]


# ── Projection & ranking ─────────────────────────────────────────────────────

class ConfirmedBooking(BaseModel):
    booking_id: str
    listing_id: str
    price: Decimal
    status: BookingStatus = BookingStatus.CONFIRMED
    appointment_date: datetime


class ProjectionResult(BaseModel):
    projected_earnings: Decimal
    upcoming_bookings: int


class ListingPerformance(BaseModel):
    listing_id: str
    listing_name: str
    transaction_count: int
    total_earnings: Decimal
    average_transaction: Decimal
