"""Consistent AUD money formatting for agreement output. Never render raw floats."""
from __future__ import annotations

import math
from typing import Any


def _finite(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value) if math.isfinite(value) else 0.0


def format_currency_aud(value: Any, drop_zero_cents: bool = False) -> str:
    """
    Format as Australian dollars: 3600 -> "$3,600.00", -5 -> "-$5.00".
    With drop_zero_cents whole amounts lose the cents ("$450"), others keep two places.
    """
    v = _finite(value)
    sign = "-" if v < 0 else ""
    amount = abs(v)
    if drop_zero_cents and round(amount, 2) == round(amount):
        return f"{sign}${amount:,.0f}"
    return f"{sign}${amount:,.2f}"
