"""Recipe suggestions computed from the current stock.

A small static catalogue is matched against the stock by normalised name
containment. Recipes are ranked so the ones consuming expiring or abundant
stock come first. AI suggestions, when available, are placed ahead of the
static matches.
"""

from __future__ import annotations

import logging
import unicodedata
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from backoffice.services.ai_service import get_ai_recipe_suggestions
from backoffice.services.stock_status import is_expired, is_expiring_soon

logger = logging.getLogger(__name__)

MIN_MATCH_RATIO = 0.5
PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}

RECIPES_CATALOGUE: Tuple[Dict[str, Any], ...] = (
    {
        "id": "1",
        "name": "Molho de Tomate",
        "description": "Molho caseiro perfeito para massas e pratos diversos",
        "ingredients": ["tomate", "cebola", "alho", "azeite", "sal", "pimenta"],
        "instructions": [
            "Corte os tomates em cubos pequenos",
            "Refogue a cebola e o alho no azeite até dourar",
            "Adicione os tomates e deixe cozinhar por 20 minutos",
            "Tempere com sal e pimenta a gosto",
            "Bata no liquidificador se desejar textura mais lisa",
        ],
        "cooking_time": 30,
        "servings": 4,
    },
    {
        "id": "2",
        "name": "Salada de Tomate e Cebola",
        "description": "Salada fresca e rápida",
        "ingredients": ["tomate", "cebola", "azeite", "vinagre", "sal"],
        "instructions": [
            "Corte os tomates em rodelas",
            "Corte a cebola em rodelas finas",
            "Tempere com azeite, vinagre e sal",
            "Sirva imediatamente",
        ],
        "cooking_time": 10,
        "servings": 2,
    },
    {
        "id": "3",
        "name": "Arroz com Frango",
        "description": "Prato completo e saboroso",
        "ingredients": ["arroz", "frango", "cebola", "alho", "sal", "pimenta"],
        "instructions": [
            "Tempere o frango com sal e pimenta",
            "Refogue a cebola e o alho",
            "Adicione o frango e deixe dourar",
            "Adicione o arroz e água",
            "Cozinhe até o arroz ficar macio",
        ],
        "cooking_time": 45,
        "servings": 4,
    },
    {
        "id": "4",
        "name": "Sopa de Legumes",
        "description": "Sopa nutritiva e reconfortante",
        "ingredients": ["tomate", "cebola", "batata", "cenoura", "sal", "pimenta"],
        "instructions": [
            "Corte todos os legumes em cubos",
            "Refogue a cebola até ficar transparente",
            "Adicione os legumes e cubra com água",
            "Cozinhe até os legumes ficarem macios",
            "Tempere com sal e pimenta",
        ],
        "cooking_time": 40,
        "servings": 6,
    },
    {
        "id": "5",
        "name": "Omelete",
        "description": "Prato rápido e versátil",
        "ingredients": ["ovo", "tomate", "cebola", "sal", "pimenta"],
        "instructions": [
            "Bata os ovos com sal e pimenta",
            "Corte o tomate e a cebola em cubos pequenos",
            "Aqueça uma frigideira com azeite",
            "Adicione os ovos batidos",
            "Quando começar a firmar, adicione os legumes",
            "Dobre ao meio e sirva",
        ],
        "cooking_time": 10,
        "servings": 2,
    },
    {
        "id": "6",
        "name": "Frango Grelhado",
        "description": "Prato simples e saudável",
        "ingredients": ["frango", "sal", "pimenta", "alho", "azeite"],
        "instructions": [
            "Tempere o frango com sal, pimenta e alho",
            "Deixe marinar por 30 minutos",
            "Grelhe em fogo médio até dourar",
            "Sirva com acompanhamentos",
        ],
        "cooking_time": 30,
        "servings": 4,
    },
    {
        "id": "7",
        "name": "Risotto de Legumes",
        "description": "Risotto cremoso com legumes",
        "ingredients": ["arroz", "cebola", "alho", "tomate", "queijo", "manteiga"],
        "instructions": [
            "Refogue a cebola e o alho",
            "Adicione o arroz e mexa até ficar translúcido",
            "Adicione o caldo quente aos poucos",
            "Quando quase pronto, adicione os legumes",
            "Finalize com queijo e manteiga",
        ],
        "cooking_time": 35,
        "servings": 4,
    },
    {
        "id": "8",
        "name": "Salada Completa",
        "description": "Salada nutritiva com vários ingredientes",
        "ingredients": ["alface", "tomate", "cebola", "azeite", "vinagre", "sal"],
        "instructions": [
            "Lave e corte todos os vegetais",
            "Misture em uma saladeira",
            "Tempere com azeite, vinagre e sal",
            "Sirva fresco",
        ],
        "cooking_time": 15,
        "servings": 4,
    },
)


def normalize_ingredient_name(name: str) -> str:
    decomposed = unicodedata.normalize("NFD", (name or "").lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).strip()


def names_match(first: str, second: str) -> bool:
    """Containment in either direction after normalisation."""

    left = normalize_ingredient_name(first)
    right = normalize_ingredient_name(second)
    if not left or not right:
        return False
    return left in right or right in left


def find_stock_match(
    recipe_ingredient: str,
    stock: Sequence[Mapping[str, Any]],
) -> Optional[Mapping[str, Any]]:
    for row in stock:
        if names_match(recipe_ingredient, str(row.get("name") or "")):
            return row
    return None


def calculate_priority(matched: Sequence[Mapping[str, Any]], today: date) -> str:
    expiring_count = sum(1 for row in matched if is_expiring_soon(row, today))
    high_stock_count = sum(1 for row in matched if _is_high_stock(row))

    if expiring_count >= 1:
        return "high"
    if high_stock_count >= 2:
        return "medium"
    if high_stock_count == 1 and len(matched) >= 3:
        return "medium"
    return "low"


def stock_score(matched: Sequence[Mapping[str, Any]]) -> float:
    score = 0.0
    for row in matched:
        quantity = _to_float(row.get("quantity"))
        min_stock = _to_float(row.get("min_stock"))
        score += quantity / min_stock if min_stock > 0 else quantity
    return score


def match_static_recipes(
    ingredients: Sequence[Mapping[str, Any]],
    today: date,
    *,
    catalogue: Sequence[Mapping[str, Any]] = RECIPES_CATALOGUE,
) -> List[Dict[str, Any]]:
    """Rank catalogue recipes that can be cooked with at least half the stock."""

    usable = [row for row in ingredients if not is_expired(row, today)]
    ranked: List[Tuple[Dict[str, Any], float]] = []

    for recipe in catalogue:
        matched_rows: List[Mapping[str, Any]] = []
        matched_names: List[str] = []
        missing: List[str] = []
        needs_expired = False

        for recipe_ingredient in recipe["ingredients"]:
            row = find_stock_match(recipe_ingredient, usable)
            if row is not None:
                matched_rows.append(row)
                matched_names.append(recipe_ingredient)
                continue
            fallback = find_stock_match(recipe_ingredient, ingredients)
            if fallback is not None and is_expired(fallback, today):
                needs_expired = True
                break
            missing.append(recipe_ingredient)

        if needs_expired:
            continue
        if len(matched_rows) / len(recipe["ingredients"]) < MIN_MATCH_RATIO:
            continue

        suggestion = {
            **recipe,
            "priority": calculate_priority(matched_rows, today),
            "matched_ingredients": matched_names,
            "missing_ingredients": missing,
            "reason": None,
            "is_ai": False,
        }
        ranked.append((suggestion, stock_score(matched_rows)))

    ranked.sort(
        key=lambda item: (
            PRIORITY_ORDER[item[0]["priority"]],
            len(item[0]["matched_ingredients"]),
            item[1],
        ),
        reverse=True,
    )
    return [suggestion for suggestion, _ in ranked]


def format_ai_recipes(
    ai_recipes: Sequence[Mapping[str, Any]],
    ingredients: Sequence[Mapping[str, Any]],
    today: date,
    *,
    has_expiring: bool,
    has_high_stock: bool,
) -> List[Dict[str, Any]]:
    if has_expiring:
        priority = "high"
    elif has_high_stock:
        priority = "medium"
    else:
        priority = "low"

    formatted: List[Dict[str, Any]] = []
    for index, recipe in enumerate(ai_recipes):
        matched: List[str] = []
        missing: List[str] = []
        for recipe_ingredient in recipe.get("ingredients", []):
            row = find_stock_match(recipe_ingredient, ingredients)
            if row is not None and not is_expired(row, today):
                matched.append(recipe_ingredient)
            else:
                missing.append(recipe_ingredient)
        formatted.append(
            {
                "id": f"ai-{index}",
                "name": recipe.get("name"),
                "description": recipe.get("description", ""),
                "ingredients": list(recipe.get("ingredients", [])),
                "instructions": list(recipe.get("instructions", [])),
                "cooking_time": recipe.get("cooking_time"),
                "servings": recipe.get("servings"),
                "priority": priority,
                "matched_ingredients": matched,
                "missing_ingredients": missing,
                "reason": recipe.get("reason"),
                "is_ai": True,
            }
        )
    return formatted


async def get_recipe_suggestions(
    ingredients: Sequence[Mapping[str, Any]],
    max_results: int = 5,
    *,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """AI suggestions first (when any), then static matches, capped at ``max_results``."""

    reference_day = today or date.today()
    static_recipes = match_static_recipes(ingredients, reference_day)[:max_results]

    expiring = [row for row in ingredients if is_expiring_soon(row, reference_day)]
    high_stock = [row for row in ingredients if not is_expired(row, reference_day) and _is_high_stock(row)]

    ai_recipes = await get_ai_recipe_suggestions(ingredients, expiring, high_stock, today=reference_day)
    if not ai_recipes:
        return static_recipes

    formatted = format_ai_recipes(
        ai_recipes,
        ingredients,
        reference_day,
        has_expiring=bool(expiring),
        has_high_stock=bool(high_stock),
    )
    logger.info("Using %d AI recipe suggestions ahead of %d static matches", len(formatted), len(static_recipes))
    return (formatted + static_recipes)[:max_results]


async def get_recipes_for_expiring_ingredients(
    ingredients: Sequence[Mapping[str, Any]],
    max_results: int = 3,
    *,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    reference_day = today or date.today()
    expiring = [row for row in ingredients if is_expiring_soon(row, reference_day)]
    if not expiring:
        return []

    suggestions = await get_recipe_suggestions(ingredients, max_results * 2, today=reference_day)
    expiring_names = [str(row.get("name") or "") for row in expiring]
    relevant = [
        suggestion
        for suggestion in suggestions
        if any(
            names_match(matched, expiring_name)
            for matched in suggestion["matched_ingredients"]
            for expiring_name in expiring_names
        )
    ]
    return relevant[:max_results]


def get_expired_ingredients(
    ingredients: Sequence[Mapping[str, Any]],
    *,
    today: Optional[date] = None,
) -> List[Mapping[str, Any]]:
    reference_day = today or date.today()
    return [row for row in ingredients if is_expired(row, reference_day)]


def _is_high_stock(row: Mapping[str, Any]) -> bool:
    return _to_float(row.get("quantity")) > _to_float(row.get("min_stock")) * 2


def _to_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


__all__ = [
    "RECIPES_CATALOGUE",
    "calculate_priority",
    "find_stock_match",
    "format_ai_recipes",
    "get_expired_ingredients",
    "get_recipe_suggestions",
    "get_recipes_for_expiring_ingredients",
    "match_static_recipes",
    "names_match",
    "normalize_ingredient_name",
    "stock_score",
]
