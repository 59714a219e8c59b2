"""Shopping list planning independent from the database layer."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from backoffice.services.stock_status import days_until_expiry

SMART_LIST_NAME = "Lista Automática"
REPLACEMENT_WINDOW_DAYS = 7
MAX_DESCRIBED_ITEMS = 5

ITEM_PRIORITIES = ("low", "normal", "high", "urgent")
PRIORITY_RANK = {name: rank for rank, name in enumerate(ITEM_PRIORITIES)}


def plan_smart_shopping_items(
    ingredients: Sequence[Mapping[str, Any]],
    today: date,
) -> List[Dict[str, Any]]:
    """Return the replenishment items for a freshly generated list.

    Expired stock comes first, then stock expiring within a week, then low
    stock. Each ingredient is planned at most once, by the first rule that
    applies to it.
    """

    expired: List[Dict[str, Any]] = []
    expiring: List[Dict[str, Any]] = []
    low: List[Dict[str, Any]] = []

    for ingredient in ingredients:
        min_stock = _to_float(ingredient.get("min_stock"))
        target = min_stock if min_stock > 0 else 1.0
        quantity = _to_float(ingredient.get("quantity"))
        days = days_until_expiry(ingredient.get("expiry_date"), today)

        if days is not None and days < 0:
            expired.append(_plan_item(ingredient, target, "urgent"))
        elif days is not None and days <= REPLACEMENT_WINDOW_DAYS:
            shortfall = target - quantity
            expiring.append(_plan_item(ingredient, shortfall if shortfall > 0 else target, "high"))
        elif quantity < target:
            low.append(_plan_item(ingredient, target - quantity, "urgent"))

    return expired + expiring + low


def sort_list_items(items: Sequence[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Order items by priority (most urgent first) then by name."""

    return sorted(
        items,
        key=lambda item: (
            -PRIORITY_RANK.get(str(item.get("priority") or "normal"), 1),
            str(item.get("ingredient_name") or "").lower(),
        ),
    )


def purchased_total(items: Sequence[Mapping[str, Any]]) -> float:
    return sum(price for price in (_to_float(item.get("price")) for item in items) if price > 0)


def format_brl(amount: float) -> str:
    return f"R$ {amount:.2f}".replace(".", ",")


def describe_completed_list(list_name: str, items: Sequence[Mapping[str, Any]]) -> Optional[str]:
    """Build the expense description for a completed list, or None without prices."""

    priced = [item for item in items if _to_float(item.get("price")) > 0]
    if not priced:
        return None
    described = ", ".join(
        f"{item.get('ingredient_name')} ({format_brl(_to_float(item.get('price')))})"
        for item in priced[:MAX_DESCRIBED_ITEMS]
    )
    description = f"Lista de compras: {list_name} - {described}"
    remaining = len(priced) - MAX_DESCRIBED_ITEMS
    if remaining > 0:
        description += f" e mais {remaining} item(s)"
    return description


def _plan_item(ingredient: Mapping[str, Any], quantity_needed: float, priority: str) -> Dict[str, Any]:
    return {
        "ingredient_id": ingredient.get("id"),
        "ingredient_name": ingredient.get("name"),
        "quantity_needed": quantity_needed,
        "unit": ingredient.get("unit"),
        "priority": priority,
        "category": ingredient.get("category"),
    }


def _to_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


__all__ = [
    "ITEM_PRIORITIES",
    "SMART_LIST_NAME",
    "describe_completed_list",
    "format_brl",
    "plan_smart_shopping_items",
    "purchased_total",
    "sort_list_items",
]
