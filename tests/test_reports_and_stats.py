import asyncio
from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from backoffice.services import dashboard_service
from backoffice.services.dashboard_service import compute_dashboard_stats
from backoffice.services.financial import compute_financial_stats, enrich_transaction_description
from backoffice.services.preferences import resolve_palette
from backoffice.services.reports import (
    build_losses_csv,
    build_monthly_consumption_csv,
    build_stock_csv,
    month_bounds,
    render_csv,
)

TODAY = date(2024, 5, 10)


def test_render_csv_quotes_every_cell() -> None:
    assert render_csv(["A", "B"], [[1, 'diz "oi"']]) == '"A","B"\n"1","diz ""oi"""'


def test_stock_csv_status_column() -> None:
    ingredients = [
        {"name": "Leite", "category": "Laticínios", "quantity": 0, "unit": "liters", "min_stock": 2, "expiry_date": "2024-05-12"},
        {"name": "Arroz", "category": None, "quantity": 1.5, "unit": "kg", "min_stock": 2, "expiry_date": None},
        {"name": "Iogurte", "category": "Laticínios", "quantity": 5, "unit": "units", "min_stock": 1, "expiry_date": "2024-05-01"},
        {"name": "Sal", "category": "Temperos", "quantity": 3, "unit": "kg", "min_stock": 1, "expiry_date": None},
    ]
    lines = build_stock_csv(ingredients, TODAY).split("\n")

    assert lines[0] == '"Nome","Categoria","Quantidade","Unidade","Estoque Mínimo","Data de Validade","Status"'
    assert lines[1] == '"Leite","Laticínios","0","liters","2","2024-05-12","Vencendo em Breve"'
    assert lines[2] == '"Arroz","","1.5","kg","2","","Estoque Baixo"'
    assert lines[3].endswith('"Vencido"')
    assert lines[4].endswith('"OK"')


def test_losses_csv() -> None:
    movements = [
        {
            "created_at": "2024-05-03T10:00:00+00:00",
            "type": "waste",
            "quantity": 2,
            "notes": "Caiu no chão",
            "ingredients": {"name": "Ovos", "unit": "units"},
        },
        {"created_at": "2024-05-04T10:00:00Z", "type": "expired", "quantity": 1.25, "notes": None, "ingredients": None},
    ]
    lines = build_losses_csv(movements).split("\n")

    assert lines[1] == '"03/05/2024","Ovos","Desperdício","2","units","Caiu no chão"'
    assert lines[2] == '"04/05/2024","Desconhecido","Vencido","1.25","",""'


def test_monthly_consumption_is_aggregated_and_sorted() -> None:
    movements = [
        {"ingredient_id": "a", "quantity": 2, "ingredients": {"name": "Arroz", "category": "Grãos", "unit": "kg"}},
        {"ingredient_id": "b", "quantity": 5, "ingredients": {"name": "Feijão", "category": "Grãos", "unit": "kg"}},
        {"ingredient_id": "a", "quantity": 4.5, "ingredients": {"name": "Arroz", "category": "Grãos", "unit": "kg"}},
        {"ingredient_id": "c", "quantity": 9, "ingredients": None},
    ]
    lines = build_monthly_consumption_csv(movements).split("\n")

    assert lines == [
        '"Ingrediente","Categoria","Total Consumido","Unidade"',
        '"Arroz","Grãos","6.5","kg"',
        '"Feijão","Grãos","5","kg"',
    ]


def test_month_bounds() -> None:
    start, end = month_bounds(2, 2024)
    assert start == datetime(2024, 2, 1, tzinfo=timezone.utc)
    assert end == datetime(2024, 2, 29, 23, 59, 59, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        month_bounds(13, 2024)


def test_financial_stats() -> None:
    stats = compute_financial_stats(
        [
            {"type": "revenue", "amount": 100, "transaction_date": "2024-05-02T10:00:00+00:00"},
            {"type": "expense", "amount": 30, "transaction_date": "2024-05-02T18:00:00+00:00"},
            {"type": "revenue", "amount": 50, "transaction_date": "2024-05-01T09:00:00+00:00"},
        ]
    )
    assert stats["total_revenue"] == 150
    assert stats["total_expenses"] == 30
    assert stats["net_profit"] == 120
    assert stats["revenue_last_30_days"] == [
        {"date": "2024-05-01", "revenue": 50, "expenses": 0},
        {"date": "2024-05-02", "revenue": 100, "expenses": 30},
    ]


def test_transaction_description_enrichment() -> None:
    enriched = enrich_transaction_description(
        {"description": "Lista de compras: Feira"},
        supplier_name="Hortifruti Silva",
        list_items=[
            {"ingredient_name": "Tomate", "quantity_needed": 2, "unit": "kg", "price": 12.5},
            {"ingredient_name": "Sal", "quantity_needed": 1, "unit": "kg", "price": None},
        ],
    )
    assert enriched["description"] == (
        "Lista de compras: Feira\nFornecedor: Hortifruti Silva\nItens: Tomate (2 kg) - R$ 12,50"
    )


def test_dashboard_aggregation() -> None:
    ingredients = [
        {"id": "i1", "name": "Arroz", "category": "Grãos", "quantity": 10, "min_stock": 2, "expiry_date": None},
        {"id": "i2", "name": "Leite", "category": None, "quantity": 1, "min_stock": 2, "expiry_date": "2024-05-12"},
        {"id": "i3", "name": "Iogurte", "category": "Laticínios", "quantity": 3, "min_stock": 1, "expiry_date": "2024-05-08"},
        {"id": "i4", "name": "Queijo", "category": "Laticínios", "quantity": 4, "min_stock": 1, "expiry_date": "2024-05-16"},
    ]
    movements = [
        {"ingredient_id": "i1", "type": "sale", "created_at": "2024-05-09T10:00:00+00:00", "ingredients": {"name": "Arroz"}},
        {"ingredient_id": "i1", "type": "sale", "created_at": "2024-05-09T12:00:00+00:00", "ingredients": {"name": "Arroz"}},
        {"ingredient_id": "i2", "type": "sale", "created_at": "2024-05-08T12:00:00+00:00", "ingredients": {"name": "Leite"}},
        {"ingredient_id": "i2", "type": "purchase", "created_at": "2024-05-08T13:00:00+00:00", "ingredients": {"name": "Leite"}},
    ]
    sales = [
        {"recipe_id": "r1", "quantity": 2, "price": 30, "sold_at": "2024-05-09T20:00:00+00:00", "recipes": {"name": "Risoto"}},
        {"recipe_id": "r2", "quantity": 1, "price": 80, "sold_at": "2024-04-28T20:00:00+00:00", "recipes": {"name": "Picanha"}},
        {"recipe_id": "r1", "quantity": 1, "price": 30, "sold_at": "2024-03-01T20:00:00+00:00", "recipes": {"name": "Risoto"}},
    ]
    expenses = [
        {"amount": 40, "transaction_date": "2024-05-03T10:00:00+00:00"},
        {"amount": 60, "transaction_date": "2024-04-03T10:00:00+00:00"},
    ]

    stats = compute_dashboard_stats(ingredients, movements, sales, expenses=expenses, revenues=[], today=TODAY)

    assert stats["total_ingredients"] == 4
    assert stats["total_categories"] == 2
    assert stats["low_stock_count"] == 1
    assert stats["expiring_soon_count"] == 1
    assert stats["expired_count"] == 1
    assert [row["name"] for row in stats["expiring_next_7_days"]] == ["Leite", "Queijo"]
    assert stats["total_stock_value"] is None
    assert {entry["category"]: entry["count"] for entry in stats["stock_by_category"]} == {
        "Grãos": 1,
        "Sem categoria": 1,
        "Laticínios": 2,
    }
    assert stats["top_used_ingredients"][0] == {"ingredient_id": "i1", "ingredient_name": "Arroz", "count": 2}
    assert stats["movements_last_30_days"] == [
        {"date": "2024-05-08", "count": 2},
        {"date": "2024-05-09", "count": 2},
    ]
    assert stats["total_revenue"] == 170
    assert stats["total_sales"] == 4
    assert [point["date"] for point in stats["revenue_last_30_days"]] == ["2024-04-28", "2024-05-09"]
    assert stats["top_selling_recipes"][0]["recipe_name"] == "Risoto"
    assert stats["top_selling_recipes"][0]["revenue"] == 90
    assert stats["total_expenses"] == 100
    assert stats["monthly_expenses"] == 40
    assert stats["monthly_revenue"] == 60
    assert stats["monthly_sales"] == 2


def test_dashboard_prefers_revenue_transactions_when_present() -> None:
    sales = [{"recipe_id": "r1", "quantity": 1, "price": 50, "sold_at": "2024-05-02T10:00:00+00:00"}]
    revenues = [
        {"amount": 200, "transaction_date": "2024-05-05T10:00:00+00:00"},
        {"amount": 100, "transaction_date": "2024-04-05T10:00:00+00:00"},
    ]
    stats = compute_dashboard_stats([], [], sales, expenses=[], revenues=revenues, today=TODAY)

    assert stats["total_revenue"] == 300
    assert stats["monthly_revenue"] == 200
    assert stats["top_selling_recipes"][0]["recipe_name"] == "Receita desconhecida"


def test_resolve_palette_falls_back_to_orange() -> None:
    assert resolve_palette("blue")["--primary"] == "217 91% 60%"
    assert resolve_palette("BLUE") == resolve_palette("blue")
    assert resolve_palette("teal") == resolve_palette("orange")
    assert resolve_palette(None)["--ring"] == resolve_palette("orange")["--primary"]


class _EmptyQuery:
    def select(self, *args, **kwargs):
        return self

    def eq(self, *args, **kwargs):
        return self

    def in_(self, *args, **kwargs):
        return self

    def gte(self, *args, **kwargs):
        return self

    def order(self, *args, **kwargs):
        return self

    def execute(self):
        return SimpleNamespace(data=[])


class _EmptyClient:
    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def table(self, name):
        return _EmptyQuery()


def test_dashboard_uses_the_local_calendar_day(monkeypatch) -> None:
    class FixedDate(date):
        @classmethod
        def today(cls):
            return cls(2024, 3, 31)

    received = []

    def capture(*args, today, **kwargs):
        received.append(today)
        return {}

    monkeypatch.setattr(dashboard_service, "date", FixedDate)
    monkeypatch.setattr(dashboard_service, "create_postgrest_client", lambda token: _EmptyClient())
    monkeypatch.setattr(dashboard_service, "compute_dashboard_stats", capture)

    asyncio.run(dashboard_service.build_dashboard_stats("token", "restaurant-1"))

    assert received == [date(2024, 3, 31)]
