"""Aggregation and presentation helpers for financial transactions."""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from backoffice.services.shopping_planner import format_brl

STATS_WINDOW_DAYS = 30


def compute_financial_stats(transactions: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Totals and a per-day revenue/expense series sorted by date."""

    total_revenue = 0.0
    total_expenses = 0.0
    per_day: Dict[str, Dict[str, float]] = {}

    for transaction in transactions:
        amount = _to_float(transaction.get("amount"))
        is_revenue = transaction.get("type") == "revenue"
        if is_revenue:
            total_revenue += amount
        else:
            total_expenses += amount

        day = str(transaction.get("transaction_date") or "")[:10]
        if not day:
            continue
        bucket = per_day.setdefault(day, {"revenue": 0.0, "expenses": 0.0})
        bucket["revenue" if is_revenue else "expenses"] += amount

    series = [
        {"date": day, "revenue": values["revenue"], "expenses": values["expenses"]}
        for day, values in sorted(per_day.items())
    ]
    return {
        "total_revenue": total_revenue,
        "total_expenses": total_expenses,
        "net_profit": total_revenue - total_expenses,
        "revenue_last_30_days": series,
    }


def enrich_transaction_description(
    transaction: Mapping[str, Any],
    *,
    supplier_name: Optional[str] = None,
    list_items: Optional[Sequence[Mapping[str, Any]]] = None,
) -> Dict[str, Any]:
    """Append the supplier name and the priced shopping list items."""

    enriched = dict(transaction)
    description = str(enriched.get("description") or "")
    if supplier_name:
        description += f"\nFornecedor: {supplier_name}"
    priced = [item for item in list_items or [] if _to_float(item.get("price")) > 0]
    if priced:
        details = "; ".join(
            f"{item.get('ingredient_name')} ({format_quantity(item.get('quantity_needed'))} {item.get('unit')})"
            f" - {format_brl(_to_float(item.get('price')))}"
            for item in priced
        )
        description += f"\nItens: {details}"
    enriched["description"] = description
    return enriched


def group_by_day(rows: Iterable[Mapping[str, Any]], field: str, value_field: Optional[str] = None) -> "OrderedDict[str, float]":
    """Sum ``value_field`` (or count rows) per ISO day of ``field``."""

    totals: Dict[str, float] = {}
    for row in rows:
        day = str(row.get(field) or "")[:10]
        if not day:
            continue
        increment = _to_float(row.get(value_field)) if value_field else 1.0
        totals[day] = totals.get(day, 0.0) + increment
    return OrderedDict(sorted(totals.items()))


def format_quantity(value: Any) -> str:
    number = _to_float(value)
    return f"{number:g}"


def _to_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


__all__ = [
    "STATS_WINDOW_DAYS",
    "compute_financial_stats",
    "enrich_transaction_description",
    "format_quantity",
    "group_by_day",
]
