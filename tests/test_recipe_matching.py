import asyncio
from datetime import date

from backoffice.services import ai_service, recipe_matching
from backoffice.services.recipe_matching import (
    calculate_priority,
    find_stock_match,
    get_expired_ingredients,
    get_recipe_suggestions,
    get_recipes_for_expiring_ingredients,
    match_static_recipes,
    names_match,
    normalize_ingredient_name,
)

TODAY = date(2024, 5, 10)


def _stock(name: str, quantity: float = 1, min_stock: float = 1, expiry_date=None, unit: str = "kg") -> dict:
    return {
        "id": f"id-{normalize_ingredient_name(name)}",
        "name": name,
        "quantity": quantity,
        "min_stock": min_stock,
        "expiry_date": expiry_date,
        "unit": unit,
    }


def test_name_matching_is_accent_and_case_insensitive() -> None:
    assert normalize_ingredient_name("  Feijão ") == "feijao"
    assert names_match("tomate", "Tomates italianos")
    assert names_match("Cebola Roxa", "cebola")
    assert not names_match("", "cebola")
    assert not names_match("frango", "carne")
    stock = [_stock("Pimenta-do-reino"), _stock("Sal grosso")]
    assert find_stock_match("sal", stock)["name"] == "Sal grosso"
    assert find_stock_match("azeite", stock) is None


def test_half_matched_recipe_is_kept() -> None:
    stock = [_stock("Frango"), _stock("Sal"), _stock("Pimenta")]
    names = {recipe["name"] for recipe in match_static_recipes(stock, TODAY)}

    # 3 of 6 ingredients (exactly half) and 3 of 5 ingredients.
    assert names == {"Arroz com Frango", "Frango Grelhado"}


def test_recipe_needing_expired_stock_is_discarded() -> None:
    stock = [
        _stock("Frango"),
        _stock("Sal"),
        _stock("Pimenta"),
        _stock("Alho", expiry_date="2024-05-01"),
    ]
    assert match_static_recipes(stock, TODAY) == []


def test_suggestion_shape_and_missing_ingredients() -> None:
    stock = [_stock("Frango"), _stock("Sal"), _stock("Pimenta"), _stock("Alho"), _stock("Azeite")]
    grilled = next(recipe for recipe in match_static_recipes(stock, TODAY) if recipe["id"] == "6")

    assert grilled["matched_ingredients"] == ["frango", "sal", "pimenta", "alho", "azeite"]
    assert grilled["missing_ingredients"] == []
    assert grilled["is_ai"] is False
    assert grilled["reason"] is None


def test_priority_rules() -> None:
    expiring = _stock("Tomate", expiry_date="2024-05-12")
    abundant = _stock("Arroz", quantity=10, min_stock=2)
    abundant_too = _stock("Frango", quantity=9, min_stock=1)
    plain = _stock("Sal")

    assert calculate_priority([expiring, plain], TODAY) == "high"
    assert calculate_priority([abundant, abundant_too], TODAY) == "medium"
    assert calculate_priority([abundant, plain, plain], TODAY) == "medium"
    assert calculate_priority([abundant, plain], TODAY) == "low"


def test_recipes_using_expiring_stock_rank_first() -> None:
    stock = [
        _stock("Frango"),
        _stock("Sal"),
        _stock("Pimenta"),
        _stock("Alho"),
        _stock("Azeite"),
        _stock("Arroz", expiry_date="2024-05-11"),
    ]
    ranked = match_static_recipes(stock, TODAY)

    assert ranked[0]["name"] == "Arroz com Frango"
    assert ranked[0]["priority"] == "high"


def test_suggestions_fall_back_to_static_catalogue() -> None:
    stock = [_stock("Frango"), _stock("Sal"), _stock("Pimenta")]
    suggestions = asyncio.run(get_recipe_suggestions(stock, 1, today=TODAY))

    assert len(suggestions) == 1
    assert suggestions[0]["is_ai"] is False


def test_ai_suggestions_come_first(monkeypatch) -> None:
    async def fake_ai(ingredients, expiring, high_stock, *, today=None):
        return [
            {
                "name": "Frango ao Alho",
                "description": "Rápido",
                "ingredients": ["frango", "alho", "limão"],
                "instructions": ["Tempere", "Grelhe"],
                "cooking_time": 25,
                "servings": 2,
                "reason": "Usa o frango que vence amanhã",
            }
        ]

    monkeypatch.setattr(recipe_matching, "get_ai_recipe_suggestions", fake_ai)
    stock = [_stock("Frango", expiry_date="2024-05-11"), _stock("Sal"), _stock("Pimenta"), _stock("Alho")]
    suggestions = asyncio.run(get_recipe_suggestions(stock, 5, today=TODAY))

    first = suggestions[0]
    assert first["id"] == "ai-0"
    assert first["is_ai"] is True
    assert first["priority"] == "high"
    assert first["matched_ingredients"] == ["frango", "alho"]
    assert first["missing_ingredients"] == ["limão"]
    assert all(not suggestion["is_ai"] for suggestion in suggestions[1:])
    assert len(suggestions) <= 5


def test_expiring_suggestions_only_keep_recipes_using_expiring_stock() -> None:
    stock = [
        _stock("Frango"),
        _stock("Sal"),
        _stock("Pimenta"),
        _stock("Arroz", expiry_date="2024-05-12"),
    ]
    suggestions = asyncio.run(get_recipes_for_expiring_ingredients(stock, today=TODAY))
    assert [suggestion["name"] for suggestion in suggestions] == ["Arroz com Frango"]

    fresh = [_stock("Frango"), _stock("Sal"), _stock("Pimenta")]
    assert asyncio.run(get_recipes_for_expiring_ingredients(fresh, today=TODAY)) == []


def test_expired_ingredients() -> None:
    stock = [_stock("Leite", expiry_date="2024-05-09"), _stock("Arroz")]
    assert [row["name"] for row in get_expired_ingredients(stock, today=TODAY)] == ["Leite"]


def test_ai_recipe_with_infinite_cooking_time_is_still_suggested(monkeypatch) -> None:
    monkeypatch.setattr(ai_service, "get_ai_client", lambda: object())
    monkeypatch.setattr(
        ai_service,
        "_request_completion",
        lambda *args, **kwargs: '[{"name":"X","ingredients":["tomate"],"instructions":["a"],"cookingTime": Infinity}]',
    )
    stock = [_stock("Frango"), _stock("Sal"), _stock("Pimenta")]
    suggestions = asyncio.run(get_recipe_suggestions(stock, 5, today=TODAY))

    assert suggestions[0]["name"] == "X"
    assert suggestions[0]["cooking_time"] == ai_service.DEFAULT_COOKING_TIME
    assert any(not suggestion["is_ai"] for suggestion in suggestions)
