"""
Fee model: platform, processing and transaction fees for a single charge.

Every component is rounded half-up to cents on its own before the net is
taken, so per-row figures always add back up to the gross amount.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from payouts.config import DEFAULT_FEE_SCHEDULE, FeeSchedule
from payouts.errors import ConfigurationError, DataInvariantError, WithdrawalError
from payouts.models import FeeBreakdown, WithdrawalMethod, WithdrawalQuote

_ZERO = Decimal("0.00")
_TWO_DP = Decimal("0.01")


def round2(value: Decimal) -> Decimal:
    return Decimal(value).quantize(_TWO_DP, rounding=ROUND_HALF_UP)


def compute_fees(gross_amount: Decimal, schedule: Optional[FeeSchedule] = None) -> FeeBreakdown:
    sched = schedule or DEFAULT_FEE_SCHEDULE
    gross = round2(gross_amount)
    if gross < _ZERO:
        raise DataInvariantError(f"Gross amount {gross} is negative")

    platform_fee = round2(gross * sched.platform_fee_rate)
    processing_fee = round2(gross * sched.processing_rate + sched.processing_fixed_fee)

    floor = sched.micro_transaction_floor
    if floor is not None and gross < floor:
        transaction_fee = _ZERO
    else:
        transaction_fee = round2(sched.transaction_fee)

    net = gross - platform_fee - processing_fee - transaction_fee
    if net < _ZERO:
        raise DataInvariantError(
            f"Fees ({platform_fee} + {processing_fee} + {transaction_fee}) exceed "
            f"gross amount {gross}; check the fee schedule"
        )

    return FeeBreakdown(
        gross_amount=gross,
        platform_fee=platform_fee,
        payment_processing_fee=processing_fee,
        transaction_fee=transaction_fee,
        net_to_seller=net,
    )


def display_net(gross_amount: Decimal, schedule: Optional[FeeSchedule] = None) -> Decimal:
    """Net-to-seller clamped at zero, for presentation only.

    Ledger code must use compute_fees, which raises instead of clamping.
    """
    sched = schedule or DEFAULT_FEE_SCHEDULE
    try:
        return compute_fees(gross_amount, sched).net_to_seller
    except DataInvariantError:
        return _ZERO


def withdrawal_fee(amount: Decimal, schedule: Optional[FeeSchedule] = None) -> Decimal:
    sched = schedule or DEFAULT_FEE_SCHEDULE
    if amount > sched.withdrawal_fee_waiver:
        return _ZERO
    return min(round2(sched.withdrawal_fee), round2(amount))


def withdrawal_quote(
    amount: Decimal,
    method,
    available: Decimal,
    schedule: Optional[FeeSchedule] = None,
) -> WithdrawalQuote:
    """Fee and net for a seller-initiated withdrawal of ``amount``.

    Standard transfers are free; express and instant transfers carry a flat
    fee. The amount must be at least the platform minimum and no more than
    the available balance.
    """
    sched = schedule or DEFAULT_FEE_SCHEDULE
    try:
        method = WithdrawalMethod(method)
    except ValueError:
        raise ConfigurationError(f"Unknown withdrawal method '{method}'") from None

    amount = round2(amount)
    available = round2(available)
    if amount < sched.minimum_withdrawal:
        raise WithdrawalError(f"Withdrawal {amount} is below the minimum {sched.minimum_withdrawal}")
    if amount > available:
        raise WithdrawalError(f"Withdrawal {amount} exceeds available balance {available}")

    fee = {
        WithdrawalMethod.STANDARD: _ZERO,
        WithdrawalMethod.EXPRESS: round2(sched.express_withdrawal_fee),
        WithdrawalMethod.INSTANT: round2(sched.instant_withdrawal_fee),
    }[method]
    if fee > amount:
        raise WithdrawalError(f"Withdrawal {amount} does not cover the {method.value} fee {fee}")
    return WithdrawalQuote(
        amount=amount,
        method=method,
        fee=fee,
        net_amount=amount - fee,
        available_after=available - amount,
    )


def check_fee_identity(txn) -> None:
    """Raise DataInvariantError unless net == amount - fees and net >= 0."""
    for name in ("platform_fee", "payment_processing_fee", "transaction_fee"):
        if getattr(txn, name) < _ZERO:
            raise DataInvariantError(f"Transaction {txn.id}: {name} is negative")
    if txn.net_to_seller < _ZERO:
        raise DataInvariantError(f"Transaction {txn.id}: net_to_seller {txn.net_to_seller} is negative")
    expected = txn.amount - txn.total_fees
    if txn.net_to_seller != expected:
        raise DataInvariantError(
            f"Transaction {txn.id}: net_to_seller {txn.net_to_seller} != "
            f"amount - fees ({expected})"
        )
