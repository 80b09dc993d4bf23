"""Display formatting used by the templates."""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

Number = Union[Decimal, int, float, str]


def format_amount(value: Number) -> str:
    """Render a price without trailing zeros: 1500.00 -> 1500, 1500.50 -> 1500.5."""
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return str(value)
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal(1)))
    return format(amount.normalize(), "f")


def format_price(value: Number, currency: str = "ZMW") -> str:
    """Monthly rent label, e.g. "ZMW 1500/month"."""
    return f"{currency} {format_amount(value)}/month"


def property_type_label(value: Optional[str]) -> str:
    if not value:
        return "Any type"
    return str(getattr(value, "value", value)).replace("_", " ").title()
