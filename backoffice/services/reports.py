"""CSV exports of stock, losses and monthly consumption."""

from __future__ import annotations

import calendar
import csv
import io
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from backoffice.services.financial import format_quantity
from backoffice.services.stock_status import days_until_expiry, is_low_stock

STOCK_HEADERS = ["Nome", "Categoria", "Quantidade", "Unidade", "Estoque Mínimo", "Data de Validade", "Status"]
LOSSES_HEADERS = ["Data", "Ingrediente", "Tipo", "Quantidade", "Unidade", "Notas"]
CONSUMPTION_HEADERS = ["Ingrediente", "Categoria", "Total Consumido", "Unidade"]

LOSS_TYPE_LABELS = {"waste": "Desperdício", "expired": "Vencido"}
UNKNOWN_INGREDIENT = "Desconhecido"


def render_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Render rows with every cell quoted and ``\\n`` line endings."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


def stock_report_status(ingredient: Mapping[str, Any], today: date) -> str:
    days = days_until_expiry(ingredient.get("expiry_date"), today)
    if days is not None and days < 0:
        return "Vencido"
    if days is not None and days <= 3:
        return "Vencendo em Breve"
    if is_low_stock(ingredient):
        return "Estoque Baixo"
    return "OK"


def build_stock_csv(ingredients: Iterable[Mapping[str, Any]], today: date) -> str:
    rows = [
        [
            ingredient.get("name") or "",
            ingredient.get("category") or "",
            format_quantity(ingredient.get("quantity")),
            ingredient.get("unit") or "",
            format_quantity(ingredient.get("min_stock")),
            ingredient.get("expiry_date") or "",
            stock_report_status(ingredient, today),
        ]
        for ingredient in ingredients
    ]
    return render_csv(STOCK_HEADERS, rows)


def build_losses_csv(movements: Iterable[Mapping[str, Any]]) -> str:
    """Movements must embed ``ingredients(name, unit)`` as returned by PostgREST."""

    rows = []
    for movement in movements:
        ingredient = movement.get("ingredients") or {}
        rows.append(
            [
                format_br_date(movement.get("created_at")),
                ingredient.get("name") or UNKNOWN_INGREDIENT,
                LOSS_TYPE_LABELS.get(str(movement.get("type")), "Vencido"),
                format_quantity(movement.get("quantity")),
                ingredient.get("unit") or "",
                movement.get("notes") or "",
            ]
        )
    return render_csv(LOSSES_HEADERS, rows)


def aggregate_monthly_consumption(movements: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    totals: Dict[str, Dict[str, Any]] = {}
    for movement in movements:
        ingredient = movement.get("ingredients")
        if not ingredient:
            continue
        key = str(movement.get("ingredient_id"))
        entry = totals.setdefault(
            key,
            {
                "name": ingredient.get("name") or UNKNOWN_INGREDIENT,
                "category": ingredient.get("category") or "",
                "unit": ingredient.get("unit") or "",
                "total": 0.0,
            },
        )
        entry["total"] += float(movement.get("quantity") or 0)
    return sorted(totals.values(), key=lambda entry: entry["total"], reverse=True)


def build_monthly_consumption_csv(movements: Iterable[Mapping[str, Any]]) -> str:
    rows = [
        [entry["name"], entry["category"], format_quantity(entry["total"]), entry["unit"]]
        for entry in aggregate_monthly_consumption(movements)
    ]
    return render_csv(CONSUMPTION_HEADERS, rows)


def month_bounds(month: int, year: int) -> Tuple[datetime, datetime]:
    """First and last instants (UTC) of a calendar month."""

    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    last_day = calendar.monthrange(year, month)[1]
    start = datetime.combine(date(year, month, 1), time.min, tzinfo=timezone.utc)
    end = datetime.combine(date(year, month, last_day), time(23, 59, 59), tzinfo=timezone.utc)
    return start, end


def format_br_date(value: Any) -> str:
    text = str(value or "")
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text
    return parsed.strftime("%d/%m/%Y")


__all__ = [
    "CONSUMPTION_HEADERS",
    "LOSSES_HEADERS",
    "STOCK_HEADERS",
    "aggregate_monthly_consumption",
    "build_losses_csv",
    "build_monthly_consumption_csv",
    "build_stock_csv",
    "format_br_date",
    "month_bounds",
    "render_csv",
    "stock_report_status",
]
