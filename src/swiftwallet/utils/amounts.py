"""Amount parsing shared by the engine, the bridge router and the API."""

from decimal import Decimal, InvalidOperation
from typing import Any

from swiftwallet.errors import InvalidAmount

ZERO = Decimal("0")
# Smallest unit a balance can hold
MICRO = Decimal("0.000001")


def parse_amount(amount: Any) -> Decimal:
    """Coerce an amount to a finite, positive Decimal or raise InvalidAmount.

    Amounts finer than one micro-unit are rejected rather than rounded, so a
    stored balance always moves by exactly the recorded amount.
    """
    if isinstance(amount, bool):
        raise InvalidAmount(amount)
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        if not value.is_finite() or value <= ZERO:
            raise InvalidAmount(amount)
        if value.quantize(MICRO) != value:
            raise InvalidAmount(amount)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(amount)
    return value
