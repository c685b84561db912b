"""
Buyback config - typed wrappers over genr8.core.config.settings.
"""
from decimal import Decimal, ROUND_HALF_UP

from genr8.core.config import settings

USD_QUANTUM = Decimal("0.000001")


def get_fee_rate() -> Decimal:
    return Decimal(str(settings.buyback_fee_rate))


def get_min_native() -> float:
    return settings.buyback_min_native


def get_execution_key() -> str:
    return settings.buyback_execution_key


def contribution_amount(amount_paid_usd: Decimal | float) -> Decimal:
    """Fee share of one payment, rounded to micro-dollars."""
    amount = Decimal(str(amount_paid_usd)) * get_fee_rate()
    return amount.quantize(USD_QUANTUM, rounding=ROUND_HALF_UP)
