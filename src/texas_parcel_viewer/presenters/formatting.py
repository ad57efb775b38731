from __future__ import annotations

from typing import Any

DASH = "—"


def _number(value: Any) -> float:
    try:
        return float(value if value is not None else 0)
    except (TypeError, ValueError):
        return 0.0


def money(value: Any) -> str:
    amount = _number(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.0f}"


def num(value: Any, digits: int = 2) -> str:
    return f"{_number(value):,.{digits}f}"


def money_or_dash(value: Any) -> str:
    return DASH if value is None else money(value)


def num_or_dash(value: Any, digits: int = 2) -> str:
    return DASH if value is None else num(value, digits)


def text_or_dash(value: Any) -> str:
    return DASH if value in (None, "") else str(value)
