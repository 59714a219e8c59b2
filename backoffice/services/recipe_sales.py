"""Stock consumption planning for recipe sales."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from backoffice.services.recipe_matching import find_stock_match

# unit -> (dimension, factor to the dimension's base unit)
UNIT_FACTORS: Dict[str, tuple[str, float]] = {
    "g": ("mass", 1.0),
    "kg": ("mass", 1000.0),
    "ml": ("volume", 1.0),
    "liters": ("volume", 1000.0),
    "units": ("count", 1.0),
}


class PlannedConsumption(BaseModel):
    ingredient_id: str
    ingredient_name: str
    recipe_ingredient: str
    quantity: float
    unit: str
    previous_quantity: float
    new_quantity: float


class SkippedIngredient(BaseModel):
    ingredient_name: str
    reason: str


class RecipeSalePlan(BaseModel):
    consumed: List[PlannedConsumption] = Field(default_factory=list)
    skipped: List[SkippedIngredient] = Field(default_factory=list)


def convert_quantity(amount: float, from_unit: str, to_unit: str) -> Optional[float]:
    """Convert between compatible units; None when the units are incompatible."""

    if from_unit == to_unit:
        return amount
    source = UNIT_FACTORS.get(from_unit)
    target = UNIT_FACTORS.get(to_unit)
    if source is None or target is None or source[0] != target[0]:
        return None
    return amount * source[1] / target[1]


def plan_recipe_sale(
    recipe_ingredients: Sequence[Mapping[str, Any]],
    stock: Sequence[Mapping[str, Any]],
    quantity_sold: int,
) -> RecipeSalePlan:
    """Work out how much of each stock ingredient a sale consumes.

    Stock never goes below zero. An ingredient used twice by the recipe is
    decremented cumulatively.
    """

    if quantity_sold < 1:
        raise ValueError("quantity_sold must be at least 1")

    plan = RecipeSalePlan()
    remaining: Dict[str, float] = {}

    for recipe_ingredient in recipe_ingredients:
        name = str(recipe_ingredient.get("ingredient_name") or "")
        match = find_stock_match(name, stock)
        if match is None:
            plan.skipped.append(SkippedIngredient(ingredient_name=name, reason="Ingrediente não encontrado no estoque"))
            continue

        stock_unit = str(match.get("unit") or "")
        needed = float(recipe_ingredient.get("quantity") or 0) * quantity_sold
        converted = convert_quantity(needed, str(recipe_ingredient.get("unit") or ""), stock_unit)
        if converted is None:
            plan.skipped.append(
                SkippedIngredient(
                    ingredient_name=name,
                    reason=f"Unidade incompatível ({recipe_ingredient.get('unit')} x {stock_unit})",
                )
            )
            continue

        ingredient_id = str(match.get("id"))
        previous = remaining.get(ingredient_id, float(match.get("quantity") or 0))
        new_quantity = max(0.0, previous - converted)
        remaining[ingredient_id] = new_quantity
        plan.consumed.append(
            PlannedConsumption(
                ingredient_id=ingredient_id,
                ingredient_name=str(match.get("name") or ""),
                recipe_ingredient=name,
                quantity=converted,
                unit=stock_unit,
                previous_quantity=previous,
                new_quantity=new_quantity,
            )
        )
    return plan


__all__ = [
    "PlannedConsumption",
    "RecipeSalePlan",
    "SkippedIngredient",
    "convert_quantity",
    "plan_recipe_sale",
]
