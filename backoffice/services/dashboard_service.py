"""Business logic powering the dashboard API."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from fastapi import HTTPException
from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError

from backoffice.services.financial import group_by_day
from backoffice.services.postgrest_client import create_postgrest_client, raise_postgrest_error
from backoffice.services.stock_status import days_until_expiry, is_low_stock

logger = logging.getLogger(__name__)

WINDOW_DAYS = 30
TOP_LIMIT = 10
UNCATEGORIZED = "Sem categoria"
UNKNOWN_INGREDIENT = "Ingrediente desconhecido"
UNKNOWN_RECIPE = "Receita desconhecida"


async def build_dashboard_stats(
    access_token: str,
    restaurant_id: str,
    *,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Fetch every dataset the dashboard needs and aggregate it."""

    reference_day = today or date.today()
    since = _day_start(reference_day - timedelta(days=WINDOW_DAYS))

    def _request() -> Dict[str, List[Dict[str, Any]]]:
        with create_postgrest_client(access_token) as client:
            ingredients = (
                client.table("ingredients").select("*").eq("restaurant_id", restaurant_id).execute()
            ).data or []
            ingredient_ids = [row["id"] for row in ingredients if row.get("id")]

            movements: List[Dict[str, Any]] = []
            if ingredient_ids:
                movements = (
                    client.table("stock_movements")
                    .select("ingredient_id,type,created_at,ingredients(name)")
                    .in_("ingredient_id", ingredient_ids)
                    .gte("created_at", since)
                    .order("created_at")
                    .execute()
                ).data or []

            sales = (
                client.table("recipe_sales")
                .select("id,recipe_id,quantity,price,sold_at,recipes(name)")
                .eq("restaurant_id", restaurant_id)
                .execute()
            ).data or []

            transactions = (
                client.table("financial_transactions")
                .select("type,amount,transaction_date")
                .eq("restaurant_id", restaurant_id)
                .execute()
            ).data or []
            return {
                "ingredients": ingredients,
                "movements": movements,
                "sales": sales,
                "transactions": transactions,
            }

    try:
        dataset = await asyncio.to_thread(_request)
    except PostgrestAPIError as exc:  # pragma: no cover - network interaction
        raise_postgrest_error(exc, context="dashboard stats")
    except HttpxError as exc:  # pragma: no cover - network interaction
        logger.error("Supabase unreachable during dashboard stats: %s", exc)
        raise HTTPException(status_code=503, detail="Supabase está temporariamente inacessível.") from exc

    transactions = dataset["transactions"]
    return compute_dashboard_stats(
        dataset["ingredients"],
        dataset["movements"],
        dataset["sales"],
        expenses=[row for row in transactions if row.get("type") == "expense"],
        revenues=[row for row in transactions if row.get("type") == "revenue"],
        today=reference_day,
    )


def compute_dashboard_stats(
    ingredients: Sequence[Mapping[str, Any]],
    movements: Sequence[Mapping[str, Any]],
    sales: Sequence[Mapping[str, Any]],
    *,
    expenses: Sequence[Mapping[str, Any]],
    revenues: Sequence[Mapping[str, Any]],
    today: date,
) -> Dict[str, Any]:
    """Aggregate the dashboard figures.

    ``movements`` are the stock movements of the last 30 days (any type),
    ``sales`` every recipe sale, ``expenses``/``revenues`` every financial
    transaction of that type.
    """

    window_start = (today - timedelta(days=WINDOW_DAYS)).isoformat()
    month_start = today.replace(day=1).isoformat()

    stock_counts = _stock_counts(ingredients, today)
    sale_movements = [row for row in movements if row.get("type") == "sale"]

    sales_figures = _sales_figures(sales, window_start, month_start)
    total_revenue = sales_figures["total_revenue"]
    monthly_revenue = sales_figures["monthly_revenue_from_sales"]
    if revenues:
        total_revenue = max(total_revenue, sum(_to_float(row.get("amount")) for row in revenues))
        monthly_revenue = sum(
            _to_float(row.get("amount")) for row in revenues if _day(row.get("transaction_date")) >= month_start
        )

    return {
        "total_ingredients": len(ingredients),
        "total_categories": len({row.get("category") for row in ingredients if row.get("category")}),
        **stock_counts,
        "total_stock_value": None,
        "stock_by_category": _stock_by_category(ingredients),
        "top_used_ingredients": _top_used_ingredients(sale_movements),
        "movements_last_30_days": [
            {"date": day, "count": int(count)}
            for day, count in group_by_day(movements, "created_at").items()
            if day >= window_start
        ],
        "total_revenue": total_revenue,
        "total_sales": sales_figures["total_sales"],
        "revenue_last_30_days": sales_figures["revenue_last_30_days"],
        "top_selling_recipes": sales_figures["top_selling_recipes"],
        "total_expenses": sum(_to_float(row.get("amount")) for row in expenses),
        "monthly_expenses": sum(
            _to_float(row.get("amount")) for row in expenses if _day(row.get("transaction_date")) >= month_start
        ),
        "monthly_revenue": monthly_revenue,
        "monthly_sales": sales_figures["monthly_sales"],
    }


def _stock_counts(ingredients: Sequence[Mapping[str, Any]], today: date) -> Dict[str, Any]:
    low_stock = expiring_soon = expired = 0
    expiring_next_7_days: List[Mapping[str, Any]] = []
    for ingredient in ingredients:
        if is_low_stock(ingredient):
            low_stock += 1
        days = days_until_expiry(ingredient.get("expiry_date"), today)
        if days is None:
            continue
        if days < 0:
            expired += 1
        elif days <= 3:
            expiring_soon += 1
        if 0 <= days <= 7:
            expiring_next_7_days.append(ingredient)
    return {
        "low_stock_count": low_stock,
        "expiring_soon_count": expiring_soon,
        "expired_count": expired,
        "expiring_next_7_days": expiring_next_7_days,
    }


def _stock_by_category(ingredients: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    categories: Dict[str, Dict[str, Any]] = {}
    for ingredient in ingredients:
        category = ingredient.get("category") or UNCATEGORIZED
        entry = categories.setdefault(category, {"category": category, "count": 0, "total_quantity": 0.0})
        entry["count"] += 1
        entry["total_quantity"] += _to_float(ingredient.get("quantity"))
    return list(categories.values())


def _top_used_ingredients(sale_movements: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    counts: Counter = Counter()
    names: Dict[str, str] = {}
    for movement in sale_movements:
        ingredient_id = str(movement.get("ingredient_id"))
        counts[ingredient_id] += 1
        embedded = movement.get("ingredients") or {}
        names.setdefault(ingredient_id, embedded.get("name") or UNKNOWN_INGREDIENT)
    return [
        {"ingredient_id": ingredient_id, "ingredient_name": names[ingredient_id], "count": count}
        for ingredient_id, count in counts.most_common(TOP_LIMIT)
    ]


def _sales_figures(sales: Sequence[Mapping[str, Any]], window_start: str, month_start: str) -> Dict[str, Any]:
    total_revenue = 0.0
    total_sales = 0.0
    monthly_sales = 0.0
    monthly_revenue = 0.0
    per_day: Dict[str, Dict[str, float]] = {}
    per_recipe: Dict[str, Dict[str, Any]] = {}

    for sale in sales:
        quantity = _to_float(sale.get("quantity")) or 1.0
        revenue = _to_float(sale.get("price")) * quantity
        total_revenue += revenue
        total_sales += quantity

        day = _day(sale.get("sold_at"))
        if day >= window_start:
            bucket = per_day.setdefault(day, {"revenue": 0.0, "sales": 0.0})
            bucket["revenue"] += revenue
            bucket["sales"] += quantity
        if day >= month_start:
            monthly_sales += quantity
            monthly_revenue += revenue

        recipe_id = str(sale.get("recipe_id"))
        embedded = sale.get("recipes") or {}
        entry = per_recipe.setdefault(
            recipe_id,
            {
                "recipe_id": recipe_id,
                "recipe_name": embedded.get("name") or UNKNOWN_RECIPE,
                "sales": 0.0,
                "revenue": 0.0,
            },
        )
        entry["sales"] += quantity
        entry["revenue"] += revenue

    return {
        "total_revenue": total_revenue,
        "total_sales": total_sales,
        "monthly_sales": monthly_sales,
        "monthly_revenue_from_sales": monthly_revenue,
        "revenue_last_30_days": [
            {"date": day, **values} for day, values in sorted(per_day.items())
        ],
        "top_selling_recipes": sorted(per_recipe.values(), key=lambda entry: entry["revenue"], reverse=True)[
            :TOP_LIMIT
        ],
    }


def _day_start(value: date) -> str:
    return datetime.combine(value, time.min, tzinfo=timezone.utc).isoformat()


def _day(value: Any) -> str:
    return str(value or "")[:10]


def _to_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


__all__ = ["build_dashboard_stats", "compute_dashboard_stats"]
