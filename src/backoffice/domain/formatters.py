from __future__ import annotations

import math
from datetime import datetime


def to_number(value: object, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def safe_multiply(a: object, b: object) -> float:
    """Line arithmetic that treats missing or garbage operands as 0 instead of propagating NaN."""
    product = to_number(a) * to_number(b)
    if math.isnan(product) or math.isinf(product):
        return 0.0
    return product


def _group_thousands(value: float, decimals: int) -> str:
    # pt-BR style: "." for thousands, "," for decimals
    text = f"{value:,.{decimals}f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def _parse_number(value: object) -> float | None:
    if value is None:
        return None
    number = to_number(value, default=math.nan)
    return None if math.isnan(number) else number


def format_currency(value: object, currency: str = "MZN") -> str:
    number = _parse_number(value)
    if number is None:
        return "-"
    return f"{_group_thousands(number, 2)} {currency}"


def format_number(value: object) -> str:
    number = _parse_number(value)
    if number is None:
        return "0"
    decimals = 0 if number.is_integer() else 2
    return _group_thousands(number, decimals)


def format_datetime(value: object) -> str:
    if not value:
        return "-"
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip().replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return "-"
    return dt.strftime("%d/%m/%Y %H:%M")
