import logging
import os
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class FeeSchedule(BaseModel):
    platform_fee_rate: Decimal = Decimal("0.025")
    processing_rate: Decimal = Decimal("0.029")
    processing_fixed_fee: Decimal = Decimal("0.30")
    transaction_fee: Decimal = Decimal("0.25")
    # gross amounts below this pay no transaction fee; None = never waived
    micro_transaction_floor: Optional[Decimal] = None
    withdrawal_fee: Decimal = Decimal("1.00")
    withdrawal_fee_waiver: Decimal = Decimal("50.00")  # payouts above this are free
    # seller-initiated withdrawals: standard transfers are free
    express_withdrawal_fee: Decimal = Decimal("1.00")
    instant_withdrawal_fee: Decimal = Decimal("3.00")
    minimum_withdrawal: Decimal = Decimal("25.00")
    settlement_delay_days: int = 7
    monthly_target: Decimal = Decimal("5000.00")


DEFAULT_FEE_SCHEDULE = FeeSchedule()


def _env_decimal(name: str, default: Optional[Decimal]) -> Optional[Decimal]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return Decimal(raw)


def load_fee_schedule() -> FeeSchedule:
    """Build the fee schedule from PAYOUTS_* environment overrides."""
    d = DEFAULT_FEE_SCHEDULE
    return FeeSchedule(
        platform_fee_rate=_env_decimal("PAYOUTS_PLATFORM_FEE_RATE", d.platform_fee_rate),
        processing_rate=_env_decimal("PAYOUTS_PROCESSING_RATE", d.processing_rate),
        processing_fixed_fee=_env_decimal("PAYOUTS_PROCESSING_FIXED_FEE", d.processing_fixed_fee),
        transaction_fee=_env_decimal("PAYOUTS_TRANSACTION_FEE", d.transaction_fee),
        micro_transaction_floor=_env_decimal("PAYOUTS_MICRO_TRANSACTION_FLOOR", d.micro_transaction_floor),
        withdrawal_fee=_env_decimal("PAYOUTS_WITHDRAWAL_FEE", d.withdrawal_fee),
        withdrawal_fee_waiver=_env_decimal("PAYOUTS_WITHDRAWAL_FEE_WAIVER", d.withdrawal_fee_waiver),
        express_withdrawal_fee=_env_decimal("PAYOUTS_EXPRESS_WITHDRAWAL_FEE", d.express_withdrawal_fee),
        instant_withdrawal_fee=_env_decimal("PAYOUTS_INSTANT_WITHDRAWAL_FEE", d.instant_withdrawal_fee),
        minimum_withdrawal=_env_decimal("PAYOUTS_MINIMUM_WITHDRAWAL", d.minimum_withdrawal),
        settlement_delay_days=int(os.getenv("PAYOUTS_SETTLEMENT_DELAY_DAYS", d.settlement_delay_days)),
        monthly_target=_env_decimal("PAYOUTS_MONTHLY_TARGET", d.monthly_target),
    )


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=level,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
