"""Date based classification of stock items.

Every function takes ``today`` explicitly so callers (and tests) control the
clock. Ingredient rows are the plain dicts returned by PostgREST.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

EXPIRING_SOON_DAYS = 3

STATUS_META: Dict[str, Dict[str, str]] = {
    "expired": {"label": "Vencido", "variant": "destructive"},
    "expiring_soon": {"label": "Vencendo em breve", "variant": "warning"},
    "low_stock": {"label": "Estoque baixo", "variant": "warning"},
    "ok": {"label": "OK", "variant": "success"},
}


def parse_expiry(value: Any) -> Optional[date]:
    """Return the expiry as a date, or None when missing or malformed."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def days_until_expiry(expiry_date: Any, today: date) -> Optional[int]:
    expiry = parse_expiry(expiry_date)
    if expiry is None:
        return None
    return (expiry - today).days


def is_expired(ingredient: Mapping[str, Any], today: date) -> bool:
    days = days_until_expiry(ingredient.get("expiry_date"), today)
    return days is not None and days < 0


def is_expiring_soon(ingredient: Mapping[str, Any], today: date, *, within_days: int = EXPIRING_SOON_DAYS) -> bool:
    days = days_until_expiry(ingredient.get("expiry_date"), today)
    return days is not None and 0 <= days <= within_days


def is_low_stock(ingredient: Mapping[str, Any]) -> bool:
    return _to_float(ingredient.get("quantity")) <= _to_float(ingredient.get("min_stock"))


def ingredient_statuses(ingredient: Mapping[str, Any], today: date) -> List[Dict[str, str]]:
    """Return the active statuses in display order (may be empty)."""

    statuses: List[str] = []
    if is_expired(ingredient, today):
        statuses.append("expired")
    elif is_expiring_soon(ingredient, today):
        statuses.append("expiring_soon")
    if is_low_stock(ingredient):
        statuses.append("low_stock")
    return [{"status": status, **STATUS_META[status]} for status in statuses]


def primary_status(ingredient: Mapping[str, Any], today: date) -> Dict[str, str]:
    statuses = ingredient_statuses(ingredient, today)
    if statuses:
        return statuses[0]
    return {"status": "ok", **STATUS_META["ok"]}


def matches_status(ingredient: Mapping[str, Any], status: str, today: date) -> bool:
    if status == "all":
        return True
    if status == "low_stock":
        return is_low_stock(ingredient)
    if status == "expiring_soon":
        return is_expiring_soon(ingredient, today)
    if status == "expired":
        return is_expired(ingredient, today)
    raise ValueError(f"Unknown status filter: {status}")


def filter_ingredients(rows: Iterable[Mapping[str, Any]], status: str, today: date) -> List[Mapping[str, Any]]:
    return [row for row in rows if matches_status(row, status, today)]


def _to_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


__all__ = [
    "EXPIRING_SOON_DAYS",
    "STATUS_META",
    "days_until_expiry",
    "filter_ingredients",
    "ingredient_statuses",
    "is_expired",
    "is_expiring_soon",
    "is_low_stock",
    "matches_status",
    "parse_expiry",
    "primary_status",
]
