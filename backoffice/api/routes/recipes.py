"""Saved recipes, recipe sales and recipe suggestions."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from backoffice.api.dependencies import get_access_token, get_current_restaurant_id, get_current_user_id
from backoffice.api.routes.financial import SupabaseFinancialDAO, get_financial_dao
from backoffice.api.routes.ingredients import SupabaseIngredientsDAO, get_ingredients_dao
from backoffice.services.recipe_matching import (
    find_stock_match,
    get_expired_ingredients,
    get_recipe_suggestions,
    get_recipes_for_expiring_ingredients,
)
from backoffice.services.recipe_sales import RecipeSalePlan, plan_recipe_sale
from backoffice.services.shopping_planner import format_brl
from backoffice.services.supabase_dao import SupabaseDAO, first_row, rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recipes", tags=["Recipes"])

DEFAULT_SUGGESTION_UNIT = "units"


class RecipeIngredientPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    ingredient_name: str = Field(..., min_length=1, max_length=120)
    quantity: float = Field(..., ge=0.01)
    unit: str = Field(..., min_length=1, max_length=20)


class RecipePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=160)
    description: Optional[str] = Field(default=None, max_length=4000)
    servings: int = Field(default=1, ge=1)
    preparation_time: Optional[int] = Field(default=None, ge=0)
    cost_per_serving: Optional[float] = Field(default=None, ge=0)
    ingredients: List[RecipeIngredientPayload] = Field(..., min_length=1)


class RecipeUpdatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=160)
    description: Optional[str] = Field(default=None, max_length=4000)
    servings: Optional[int] = Field(default=None, ge=1)
    preparation_time: Optional[int] = Field(default=None, ge=0)
    cost_per_serving: Optional[float] = Field(default=None, ge=0)
    ingredients: Optional[List[RecipeIngredientPayload]] = Field(default=None, min_length=1)


class RecipeIngredientRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[UUID] = None
    ingredient_name: str
    quantity: float
    unit: str


class RecipeRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: UUID
    restaurant_id: UUID
    name: str
    description: Optional[str] = None
    servings: int = 1
    preparation_time: Optional[int] = None
    cost_per_serving: Optional[float] = None
    ingredients: List[RecipeIngredientRecord] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RecipeSalePayload(BaseModel):
    quantity: int = Field(default=1, ge=1)


class RecipeSaleResponse(RecipeSalePlan):
    recipe_id: UUID
    quantity: int
    price: float
    total: float


class RecipeSuggestion(BaseModel):
    id: str
    name: str
    description: str = ""
    ingredients: List[str] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    cooking_time: Optional[int] = None
    servings: Optional[int] = None
    priority: str = "low"
    matched_ingredients: List[str] = Field(default_factory=list)
    missing_ingredients: List[str] = Field(default_factory=list)
    reason: Optional[str] = None
    is_ai: bool = False


class SaveSuggestionPayload(BaseModel):
    suggestion: RecipeSuggestion
    price: Optional[float] = Field(default=None, ge=0)
    servings: Optional[int] = Field(default=None, ge=1)


class SupabaseRecipesDAO(SupabaseDAO):
    """DAO for ``recipes``, ``recipe_ingredients`` and ``recipe_sales``."""

    async def list_recipes(self) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("recipes")
                    .select("*, ingredients:recipe_ingredients(*)")
                    .eq("restaurant_id", self.restaurant_id_str)
                    .order("name")
                    .execute()
                )
                return rows(response.data)

        return await self._run(_request, context="list recipes")

    async def get_recipe(self, recipe_id: UUID) -> Optional[Dict[str, Any]]:
        def _request() -> Optional[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("recipes")
                    .select("*, ingredients:recipe_ingredients(*)")
                    .eq("id", str(recipe_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .limit(1)
                    .execute()
                )
                found = rows(response.data)
                return found[0] if found else None

        return await self._run(_request, context="get recipe")

    async def create_recipe(
        self,
        fields: Dict[str, Any],
        ingredients: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        record = {"restaurant_id": self.restaurant_id_str, **fields}

        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = client.table("recipes").insert(record).execute()
                recipe = first_row(response.data, context="create recipe")
                linked = [{"recipe_id": recipe["id"], **item} for item in ingredients]
                inserted = client.table("recipe_ingredients").insert(linked).execute()
                return {**recipe, "ingredients": rows(inserted.data)}

        return await self._run(_request, context="create recipe")

    async def update_recipe(
        self,
        recipe_id: UUID,
        changes: Dict[str, Any],
        ingredients: Optional[List[Dict[str, Any]]],
    ) -> None:
        """Update recipe fields and, when given, replace its ingredient rows."""

        def _request() -> None:
            with self._client() as client:
                if changes:
                    response = (
                        client.table("recipes")
                        .update(changes)
                        .eq("id", str(recipe_id))
                        .eq("restaurant_id", self.restaurant_id_str)
                        .execute()
                    )
                    if not rows(response.data):
                        raise HTTPException(status_code=404, detail="Receita não encontrada.")
                if ingredients is not None:
                    client.table("recipe_ingredients").delete().eq("recipe_id", str(recipe_id)).execute()
                    linked = [{"recipe_id": str(recipe_id), **item} for item in ingredients]
                    client.table("recipe_ingredients").insert(linked).execute()

        await self._run(_request, context="update recipe")

    async def delete_recipe(self, recipe_id: UUID) -> None:
        def _request() -> None:
            with self._client() as client:
                (
                    client.table("recipes")
                    .delete()
                    .eq("id", str(recipe_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .execute()
                )

        await self._run(_request, context="delete recipe")

    async def record_sale(
        self,
        recipe_id: UUID,
        quantity: int,
        price: float,
        plan: RecipeSalePlan,
        *,
        user_id: Optional[str],
    ) -> Dict[str, Any]:
        """Apply the planned stock decrements, log them, then store the sale."""

        sale = {
            "restaurant_id": self.restaurant_id_str,
            "recipe_id": str(recipe_id),
            "quantity": quantity,
            "price": price,
            "user_id": user_id,
            "sold_at": datetime.now(timezone.utc).isoformat(),
        }
        movements = [
            {
                "ingredient_id": item.ingredient_id,
                "type": "sale",
                "quantity": item.quantity,
                "previous_quantity": item.previous_quantity,
                "new_quantity": item.new_quantity,
                "notes": f"Venda de receita ({quantity}x)",
                "user_id": user_id,
            }
            for item in plan.consumed
        ]

        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                for item in plan.consumed:
                    (
                        client.table("ingredients")
                        .update({"quantity": item.new_quantity})
                        .eq("id", item.ingredient_id)
                        .eq("restaurant_id", self.restaurant_id_str)
                        .execute()
                    )
                if movements:
                    client.table("stock_movements").insert(movements).execute()
                response = client.table("recipe_sales").insert(sale).execute()
                return first_row(response.data, context="record recipe sale")

        return await self._run(_request, context="record recipe sale")


async def get_recipes_dao(
    restaurant_id: UUID = Depends(get_current_restaurant_id),
    access_token: str = Depends(get_access_token),
) -> SupabaseRecipesDAO:
    return SupabaseRecipesDAO(restaurant_id, access_token)


async def _require_recipe(dao: SupabaseRecipesDAO, recipe_id: UUID) -> Dict[str, Any]:
    recipe = await dao.get_recipe(recipe_id)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Receita não encontrada.")
    return recipe


async def sell_recipe(
    recipes: SupabaseRecipesDAO,
    ingredients: SupabaseIngredientsDAO,
    financial: SupabaseFinancialDAO,
    recipe_id: UUID,
    quantity: int,
    *,
    user_id: Optional[str],
) -> RecipeSaleResponse:
    """Sell ``quantity`` servings: consume stock, store the sale, book the revenue."""

    recipe = await _require_recipe(recipes, recipe_id)
    stock = await ingredients.fetch_all_ingredients()
    plan = plan_recipe_sale(recipe.get("ingredients") or [], stock, quantity)
    for skipped in plan.skipped:
        logger.warning("Recipe %s sale skipped %s: %s", recipe_id, skipped.ingredient_name, skipped.reason)

    price = float(recipe.get("cost_per_serving") or 0)
    await recipes.record_sale(recipe_id, quantity, price, plan, user_id=user_id)

    total = price * quantity
    if total > 0:
        await financial.create_transaction(
            type="revenue",
            description=f"Venda: {recipe.get('name')} ({quantity}x) - {format_brl(total)}",
            amount=total,
            user_id=user_id,
            category="recipe_sale",
            reference_id=str(recipe_id),
        )
    return RecipeSaleResponse(
        recipe_id=recipe_id,
        quantity=quantity,
        price=price,
        total=total,
        consumed=plan.consumed,
        skipped=plan.skipped,
    )


def suggestion_to_recipe(
    suggestion: RecipeSuggestion,
    stock: List[Dict[str, Any]],
    *,
    price: Optional[float],
    servings: Optional[int],
) -> RecipePayload:
    """Turn a suggestion into a saveable recipe.

    Suggestions only carry ingredient names, so each one is stored as a single
    unit of the matching stock ingredient's unit.
    """

    description = suggestion.description
    if suggestion.instructions:
        steps = "\n".join(f"{index}. {step}" for index, step in enumerate(suggestion.instructions, start=1))
        description = f"{description}\n\n{steps}" if description else steps

    ingredients = []
    for name in suggestion.ingredients:
        match = find_stock_match(name, stock)
        unit = str(match.get("unit")) if match is not None and match.get("unit") else DEFAULT_SUGGESTION_UNIT
        ingredients.append(RecipeIngredientPayload(ingredient_name=name, quantity=1, unit=unit))

    return RecipePayload(
        name=suggestion.name,
        description=description or None,
        servings=servings or suggestion.servings or 1,
        preparation_time=suggestion.cooking_time,
        cost_per_serving=price,
        ingredients=ingredients,
    )


def _split_payload(payload: RecipePayload | RecipeUpdatePayload, *, exclude_unset: bool) -> tuple[Dict[str, Any], Optional[List[Dict[str, Any]]]]:
    fields = payload.model_dump(mode="json", exclude_unset=exclude_unset, exclude={"ingredients"})
    ingredients = None
    if payload.ingredients is not None:
        ingredients = [item.model_dump(mode="json") for item in payload.ingredients]
    return fields, ingredients


@router.get("", response_model=List[RecipeRecord])
async def list_recipes_endpoint(dao: SupabaseRecipesDAO = Depends(get_recipes_dao)) -> List[RecipeRecord]:
    return [RecipeRecord(**row) for row in await dao.list_recipes()]


@router.get("/suggestions", response_model=List[RecipeSuggestion])
async def recipe_suggestions_endpoint(
    max_results: int = Query(default=5, ge=1, le=20),
    ingredients: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
) -> List[RecipeSuggestion]:
    stock = await ingredients.fetch_all_ingredients()
    suggestions = await get_recipe_suggestions(stock, max_results)
    return [RecipeSuggestion(**item) for item in suggestions]


@router.get("/suggestions/expiring", response_model=List[RecipeSuggestion])
async def expiring_suggestions_endpoint(
    max_results: int = Query(default=3, ge=1, le=20),
    ingredients: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
) -> List[RecipeSuggestion]:
    stock = await ingredients.fetch_all_ingredients()
    suggestions = await get_recipes_for_expiring_ingredients(stock, max_results)
    return [RecipeSuggestion(**item) for item in suggestions]


@router.get("/suggestions/expired-ingredients")
async def expired_ingredients_endpoint(
    ingredients: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
) -> List[Dict[str, Any]]:
    stock = await ingredients.fetch_all_ingredients()
    return [dict(row) for row in get_expired_ingredients(stock, today=date.today())]


@router.post("/suggestions/save", response_model=RecipeRecord, status_code=201)
async def save_suggestion_endpoint(
    payload: SaveSuggestionPayload,
    dao: SupabaseRecipesDAO = Depends(get_recipes_dao),
    ingredients: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
) -> RecipeRecord:
    if not payload.suggestion.ingredients:
        raise HTTPException(status_code=400, detail="A sugestão não possui ingredientes.")
    stock = await ingredients.fetch_all_ingredients()
    recipe = suggestion_to_recipe(payload.suggestion, stock, price=payload.price, servings=payload.servings)
    fields, items = _split_payload(recipe, exclude_unset=False)
    return RecipeRecord(**await dao.create_recipe(fields, items or []))


@router.get("/{recipe_id}", response_model=RecipeRecord)
async def get_recipe_endpoint(
    recipe_id: UUID,
    dao: SupabaseRecipesDAO = Depends(get_recipes_dao),
) -> RecipeRecord:
    return RecipeRecord(**await _require_recipe(dao, recipe_id))


@router.post("", response_model=RecipeRecord, status_code=201)
async def create_recipe_endpoint(
    payload: RecipePayload,
    dao: SupabaseRecipesDAO = Depends(get_recipes_dao),
) -> RecipeRecord:
    fields, items = _split_payload(payload, exclude_unset=False)
    return RecipeRecord(**await dao.create_recipe(fields, items or []))


@router.patch("/{recipe_id}", response_model=RecipeRecord)
async def update_recipe_endpoint(
    recipe_id: UUID,
    payload: RecipeUpdatePayload,
    dao: SupabaseRecipesDAO = Depends(get_recipes_dao),
) -> RecipeRecord:
    fields, items = _split_payload(payload, exclude_unset=True)
    if not fields and items is None:
        raise HTTPException(status_code=400, detail="Nenhuma alteração informada.")
    await _require_recipe(dao, recipe_id)
    await dao.update_recipe(recipe_id, fields, items)
    return RecipeRecord(**await _require_recipe(dao, recipe_id))


@router.delete("/{recipe_id}", status_code=204)
async def delete_recipe_endpoint(
    recipe_id: UUID,
    dao: SupabaseRecipesDAO = Depends(get_recipes_dao),
) -> Response:
    await dao.delete_recipe(recipe_id)
    return Response(status_code=204)


@router.post("/{recipe_id}/sell", response_model=RecipeSaleResponse)
async def sell_recipe_endpoint(
    recipe_id: UUID,
    payload: RecipeSalePayload,
    dao: SupabaseRecipesDAO = Depends(get_recipes_dao),
    ingredients: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
    financial: SupabaseFinancialDAO = Depends(get_financial_dao),
    user_id: str = Depends(get_current_user_id),
) -> RecipeSaleResponse:
    return await sell_recipe(dao, ingredients, financial, recipe_id, payload.quantity, user_id=user_id)
