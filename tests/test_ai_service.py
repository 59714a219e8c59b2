import asyncio
from datetime import date

import pytest

from backoffice.services import ai_service
from backoffice.services.ai_service import (
    AIResponseError,
    build_recipe_prompt,
    get_ai_recipe_suggestions,
    parse_recipe_suggestions,
    parse_validation_response,
    strip_code_fences,
    validate_ingredient_name,
)
from backoffice.services.ingredient_validation import find_non_food_keyword, quick_validate_ingredient_name


def test_parse_bare_array_inside_code_fence() -> None:
    content = """```json
[{"name": "Arroz de Forno", "description": "Gratinado", "ingredients": ["arroz", "queijo"],
  "instructions": ["Misture", "Asse"], "cookingTime": 40, "servings": 6, "reason": "Usa o queijo"}]
```"""
    recipes = parse_recipe_suggestions(content)

    assert recipes == [
        {
            "name": "Arroz de Forno",
            "description": "Gratinado",
            "ingredients": ["arroz", "queijo"],
            "instructions": ["Misture", "Asse"],
            "cooking_time": 40,
            "servings": 6,
            "reason": "Usa o queijo",
        }
    ]


def test_parse_recipes_object_and_defaults() -> None:
    content = '{"recipes": [{"name": "Sopa", "ingredients": ["batata"], "instructions": ["Cozinhe"]}]}'
    recipe = parse_recipe_suggestions(content)[0]

    assert recipe["cooking_time"] == ai_service.DEFAULT_COOKING_TIME
    assert recipe["servings"] == ai_service.DEFAULT_SERVINGS
    assert recipe["reason"] == ai_service.DEFAULT_REASON
    assert recipe["description"] == ""


def test_parse_extracts_array_from_prose_and_drops_invalid_entries() -> None:
    content = (
        "Claro! Aqui estão as receitas: "
        '[{"name": "Omelete", "ingredients": ["ovo"], "instructions": ["Bata"]},'
        ' {"name": "", "ingredients": [], "instructions": []},'
        ' {"name": "Sem passos", "ingredients": ["sal"]},'
        ' {"name": "A", "ingredients": ["x"], "instructions": ["y"]},'
        ' {"name": "B", "ingredients": ["x"], "instructions": ["y"]},'
        ' {"name": "C", "ingredients": ["x"], "instructions": ["y"]}]'
        " Bom apetite!"
    )
    recipes = parse_recipe_suggestions(content)

    assert [recipe["name"] for recipe in recipes] == ["Omelete", "A", "B"]


@pytest.mark.parametrize("content", ["", None, "nenhuma receita hoje", "[not json]"])
def test_parse_rejects_unusable_completions(content) -> None:
    with pytest.raises(AIResponseError):
        parse_recipe_suggestions(content)


def test_parse_validation_response() -> None:
    verdict = parse_validation_response('```\n{"isValid": true, "reason": "ok", "suggestion": "Tomate"}\n```')
    assert verdict == {"is_valid": True, "reason": "ok", "suggestion": "Tomate"}

    embedded = parse_validation_response('Resposta: {"isValid": false, "reason": "É um móvel"} fim')
    assert embedded["is_valid"] is False

    with pytest.raises(AIResponseError):
        parse_validation_response("sem json")


def test_strip_code_fences() -> None:
    assert strip_code_fences("```json\n[1]\n```") == "[1]"
    assert strip_code_fences(None) == ""


def test_recipe_prompt_lists_stock_and_priorities() -> None:
    today = date(2024, 5, 10)
    tomato = {"name": "Tomate", "quantity": 3, "unit": "kg", "expiry_date": "2024-05-12"}
    spoiled = {"name": "Leite", "quantity": 1, "unit": "liters", "expiry_date": "2024-05-01"}

    prompt = build_recipe_prompt([tomato, spoiled], [tomato], [], today)

    assert "Tomate (3 kg)" in prompt
    assert "Leite" not in prompt.split("INGREDIENTES VENCENDO")[0]
    assert "Tomate (vence em 2 dias)" in prompt
    assert "COM MUITO ESTOQUE (priorizar usar): Nenhum" in prompt


def test_suggestions_are_empty_without_client() -> None:
    assert asyncio.run(get_ai_recipe_suggestions([], [], [])) == []


def test_suggestions_fail_open_on_bad_completion(monkeypatch) -> None:
    monkeypatch.setattr(ai_service, "get_ai_client", lambda: object())
    monkeypatch.setattr(ai_service, "_request_completion", lambda *args, **kwargs: "desculpe")

    assert asyncio.run(get_ai_recipe_suggestions([], [], [])) == []


def test_validation_uses_ai_verdict_when_available(monkeypatch) -> None:
    monkeypatch.setattr(ai_service, "get_ai_client", lambda: object())
    monkeypatch.setattr(
        ai_service,
        "_request_completion",
        lambda *args, **kwargs: '{"isValid": true, "reason": "Fruta", "suggestion": "Banana"}',
    )

    verdict = asyncio.run(validate_ingredient_name("Bananna"))
    assert verdict == {"is_valid": True, "reason": "Fruta", "suggestion": "Banana"}


def test_validation_falls_back_to_keywords(monkeypatch) -> None:
    monkeypatch.setattr(ai_service, "get_ai_client", lambda: object())
    monkeypatch.setattr(ai_service, "_request_completion", lambda *args, **kwargs: "???")

    verdict = asyncio.run(validate_ingredient_name("Cadeira de plástico"))
    assert verdict["is_valid"] is False
    assert "cadeira" in verdict["reason"]


def test_short_names_are_rejected_before_any_completion(monkeypatch) -> None:
    def _fail(*args, **kwargs):
        raise AssertionError("completion should not be requested")

    monkeypatch.setattr(ai_service, "get_ai_client", lambda: object())
    monkeypatch.setattr(ai_service, "_request_completion", _fail)

    verdict = asyncio.run(validate_ingredient_name(" a "))
    assert verdict["is_valid"] is False
    assert verdict["reason"] == "Nome muito curto. Use um nome descritivo do ingrediente."


def test_quick_validation() -> None:
    assert quick_validate_ingredient_name("Farinha de trigo")["is_valid"] is True
    verdict = quick_validate_ingredient_name("Detergente neutro")
    assert verdict["is_valid"] is False
    assert verdict["reason"] == (
        '"Detergente neutro" não parece ser um ingrediente comestível. Parece ser um(a) detergente.'
    )
    assert find_non_food_keyword("MESA de jantar") == "mesa"
    assert quick_validate_ingredient_name("x")["is_valid"] is False


def test_parse_non_finite_numbers_fall_back_to_defaults() -> None:
    content = (
        '[{"name": "X", "ingredients": ["tomate"], "instructions": ["a"],'
        ' "cookingTime": Infinity, "servings": -Infinity}]'
    )
    recipe = parse_recipe_suggestions(content)[0]

    assert recipe["cooking_time"] == ai_service.DEFAULT_COOKING_TIME
    assert recipe["servings"] == ai_service.DEFAULT_SERVINGS


def test_suggestions_fail_open_on_unexpected_error(monkeypatch) -> None:
    def _explode(*args, **kwargs):
        raise RuntimeError("connection pool exhausted")

    monkeypatch.setattr(ai_service, "get_ai_client", lambda: object())
    monkeypatch.setattr(ai_service, "_request_completion", _explode)

    assert asyncio.run(get_ai_recipe_suggestions([], [], [])) == []


def test_validation_falls_back_to_keywords_on_unexpected_error(monkeypatch) -> None:
    def _explode(*args, **kwargs):
        raise RuntimeError("connection pool exhausted")

    monkeypatch.setattr(ai_service, "get_ai_client", lambda: object())
    monkeypatch.setattr(ai_service, "_request_completion", _explode)

    assert asyncio.run(validate_ingredient_name("Farinha de trigo"))["is_valid"] is True
