from datetime import date

from backoffice.services.shopping_planner import (
    describe_completed_list,
    format_brl,
    plan_smart_shopping_items,
    purchased_total,
    sort_list_items,
)

TODAY = date(2024, 5, 10)


def _ingredient(name: str, quantity: float, min_stock: float, expiry_date=None) -> dict:
    return {
        "id": f"id-{name}",
        "name": name,
        "quantity": quantity,
        "min_stock": min_stock,
        "unit": "kg",
        "category": "Hortifruti",
        "expiry_date": expiry_date,
    }


def test_smart_list_rules_and_grouping() -> None:
    ingredients = [
        _ingredient("Batata", 1, 5),
        _ingredient("Leite", 10, 4, expiry_date="2024-05-01"),
        _ingredient("Queijo", 1, 3, expiry_date="2024-05-15"),
        _ingredient("Iogurte", 6, 3, expiry_date="2024-05-17"),
        _ingredient("Arroz", 50, 10),
        _ingredient("Sal", 0, 0),
        _ingredient("Ovos", 2, 2, expiry_date="2024-06-30"),
    ]
    planned = plan_smart_shopping_items(ingredients, TODAY)
    summary = [(item["ingredient_name"], item["quantity_needed"], item["priority"]) for item in planned]

    assert summary == [
        ("Leite", 4, "urgent"),
        ("Queijo", 2, "high"),
        ("Iogurte", 3, "high"),
        ("Batata", 4, "urgent"),
        ("Sal", 1, "urgent"),
    ]
    assert planned[0]["ingredient_id"] == "id-Leite"
    assert planned[0]["unit"] == "kg"
    assert planned[0]["category"] == "Hortifruti"


def test_expired_and_low_ingredient_is_planned_once() -> None:
    planned = plan_smart_shopping_items([_ingredient("Creme", 0, 2, expiry_date="2024-05-02")], TODAY)
    assert len(planned) == 1
    assert planned[0]["priority"] == "urgent"
    assert planned[0]["quantity_needed"] == 2


def test_nothing_to_plan_for_healthy_stock() -> None:
    assert plan_smart_shopping_items([_ingredient("Arroz", 20, 5)], TODAY) == []


def test_sort_list_items_by_priority_then_name() -> None:
    items = [
        {"ingredient_name": "cenoura", "priority": "low"},
        {"ingredient_name": "Batata", "priority": "urgent"},
        {"ingredient_name": "Abobrinha", "priority": "normal"},
        {"ingredient_name": "alho", "priority": "urgent"},
        {"ingredient_name": "Tomate", "priority": "high"},
    ]
    ordered = [item["ingredient_name"] for item in sort_list_items(items)]
    assert ordered == ["alho", "Batata", "Tomate", "Abobrinha", "cenoura"]


def test_completed_list_description_and_total() -> None:
    items = [{"ingredient_name": f"Item {index}", "price": float(index)} for index in range(1, 8)]
    items.append({"ingredient_name": "Sem preço", "price": None})

    assert purchased_total(items) == 28.0
    description = describe_completed_list("Feira", items)
    assert description == (
        "Lista de compras: Feira - Item 1 (R$ 1,00), Item 2 (R$ 2,00), Item 3 (R$ 3,00), "
        "Item 4 (R$ 4,00), Item 5 (R$ 5,00) e mais 2 item(s)"
    )


def test_completed_list_without_prices_has_no_description() -> None:
    assert describe_completed_list("Feira", [{"ingredient_name": "Sal", "price": 0}]) is None
    assert format_brl(1234.5) == "R$ 1234,50"
