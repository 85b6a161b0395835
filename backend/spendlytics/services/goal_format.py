from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP


def _trim_number(value: Decimal, places: int) -> str:
    quantized = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    text = f"{quantized:,.{places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_goal_value(value: Decimal | int | float, unit: str | None = None) -> str:
    """
    Render a goal amount for insight text and cards.

    '$' units -> '$1,250' (whole dollars), '%' -> '12.5%',
    anything else -> '1,250.5 units'.
    """
    amount = value if isinstance(value, Decimal) else Decimal(str(value))

    if unit and "$" in unit:
        whole = amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        sign = "-" if whole < 0 else ""
        return f"{sign}${abs(whole):,.0f}"

    if unit == "%":
        return f"{amount.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}%"

    return f"{_trim_number(amount, 3)} {unit or ''}".strip()


def format_pct(value: Decimal) -> str:
    """One-decimal percentage for messages, e.g. '42.5%'."""
    return f"{value.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}%"
