"""
Lenient parsing of the loosely formatted values agreement forms send:
prices like "$1,200.50" or "300,00" and ISO dates or timestamps.
Nothing here raises; unusable input falls back to 0 or "".
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo

SYDNEY_TZ = ZoneInfo("Australia/Sydney")
AU_DATE_FORMAT = "%d/%m/%Y"

_PRICE_STRIP_RE = re.compile(r"[^0-9.,-]")
_LEADING_FLOAT_RE = re.compile(r"^[-+]?(?:\d+\.?\d*|\.\d+)")


def _non_negative(num: float) -> float:
    return num if math.isfinite(num) and num > 0 else 0.0


def parse_price(value: Any) -> float:
    """
    Convert "$300.00", "300", "300,00", "1,234.50" or a number to float.
    When both "." and "," appear the commas are thousands separators; a lone ","
    is read as the decimal point. Returns 0.0 when nothing numeric remains.
    Prices, quantities and unit counts are never negative: "-15" reads as 0.0.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        try:
            return _non_negative(float(value))
        except OverflowError:
            return 0.0
    cleaned = _PRICE_STRIP_RE.sub("", str(value))
    if "." in cleaned and "," in cleaned:
        normalized = cleaned.replace(",", "")
    else:
        normalized = cleaned.replace(",", ".", 1)
    match = _LEADING_FLOAT_RE.match(normalized)
    if not match:
        return 0.0
    try:
        num = float(match.group(0))
    except ValueError:
        return 0.0
    return _non_negative(num)


def _parse_iso(value: str) -> Optional[datetime]:
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_date_au(value: Any) -> str:
    """ISO date/timestamp -> DD/MM/YYYY on the Sydney calendar. "" when unparseable."""
    if not isinstance(value, str):
        return ""
    parsed = _parse_iso(value)
    if parsed is None:
        return ""
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(SYDNEY_TZ)
    return parsed.strftime(AU_DATE_FORMAT)


def today_au(now: datetime | None = None) -> str:
    """Today's date in Sydney as DD/MM/YYYY."""
    current = now if now is not None else datetime.now(tz=SYDNEY_TZ)
    if current.tzinfo is not None:
        current = current.astimezone(SYDNEY_TZ)
    return current.strftime(AU_DATE_FORMAT)


def safe_join(parts: Iterable[Any] | None, sep: str = " ") -> str:
    """Trim each part, drop empties and join."""
    cleaned = []
    for part in parts or []:
        text = "" if part is None else str(part).strip()
        if text:
            cleaned.append(text)
    return sep.join(cleaned)
