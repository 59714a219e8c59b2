"""Inventory endpoints: ingredients, their categories and stock movements."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from backoffice.api.dependencies import get_access_token, get_current_restaurant_id, get_current_user_id
from backoffice.services.ai_service import validate_ingredient_name
from backoffice.services.inventory import PAGE_SIZE, apply_movement, page_range, total_pages
from backoffice.services.stock_status import EXPIRING_SOON_DAYS, is_low_stock, primary_status
from backoffice.services.supabase_dao import SupabaseDAO, first_row, rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ingredients", tags=["Ingredients"])

Unit = Literal["kg", "liters", "units", "g", "ml"]
MovementType = Literal["purchase", "sale", "adjustment", "waste", "expired"]
StatusFilter = Literal["all", "low_stock", "expiring_soon", "expired"]
NameValidator = Callable[[str], Awaitable[Dict[str, Any]]]


class IngredientPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=120)
    quantity: float = Field(default=0, ge=0)
    unit: Unit
    min_stock: float = Field(default=0, ge=0)
    expiry_date: Optional[date] = None
    category: Optional[str] = Field(default=None, max_length=80)


class IngredientUpdatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    quantity: Optional[float] = Field(default=None, ge=0)
    unit: Optional[Unit] = None
    min_stock: Optional[float] = Field(default=None, ge=0)
    expiry_date: Optional[date] = None
    category: Optional[str] = Field(default=None, max_length=80)


class IngredientRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: UUID
    restaurant_id: UUID
    name: str
    quantity: float
    unit: str
    min_stock: float
    expiry_date: Optional[date] = None
    category: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    status: Optional[Dict[str, str]] = None


class IngredientPage(BaseModel):
    data: List[IngredientRecord]
    count: int
    page: int
    total_pages: int


class StockMovementPayload(BaseModel):
    type: MovementType
    quantity: float = Field(..., gt=0)
    notes: Optional[str] = Field(default=None, max_length=500)


class StockMovementRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[UUID] = None
    ingredient_id: UUID
    type: MovementType
    quantity: float
    previous_quantity: float
    new_quantity: float
    notes: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


class NameValidationPayload(BaseModel):
    name: str


class NameValidationResponse(BaseModel):
    is_valid: bool
    reason: Optional[str] = None
    suggestion: Optional[str] = None


class SupabaseIngredientsDAO(SupabaseDAO):
    """DAO for the ``ingredients`` and ``stock_movements`` tables."""

    async def list_ingredients(
        self,
        page: int,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
        status: StatusFilter = "all",
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        reference_day = today or date.today()

        def _request() -> Dict[str, Any]:
            with self._client() as client:
                query = (
                    client.table("ingredients")
                    .select("*", count="exact")
                    .eq("restaurant_id", self.restaurant_id_str)
                    .order("created_at", desc=True)
                )
                if search:
                    query = query.ilike("name", f"%{search}%")
                if category:
                    query = query.eq("category", category)
                if status == "expired":
                    query = query.lt("expiry_date", reference_day.isoformat())
                elif status == "expiring_soon":
                    query = query.gte("expiry_date", reference_day.isoformat()).lte(
                        "expiry_date", (reference_day + timedelta(days=EXPIRING_SOON_DAYS)).isoformat()
                    )

                if status == "low_stock":
                    # PostgREST cannot compare two columns, filter and paginate here.
                    matching = [row for row in rows(query.execute().data) if is_low_stock(row)]
                    start, end = page_range(page)
                    return {"data": matching[start : end + 1], "count": len(matching)}

                start, end = page_range(page)
                response = query.range(start, end).execute()
                page_rows = rows(response.data)
                count = response.count if response.count is not None else len(page_rows)
                return {"data": page_rows, "count": count}

        result = await self._run(_request, context="list ingredients")
        return {
            "data": result["data"],
            "count": result["count"],
            "page": page,
            "total_pages": total_pages(result["count"], PAGE_SIZE),
        }

    async def fetch_all_ingredients(self) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("ingredients")
                    .select("*")
                    .eq("restaurant_id", self.restaurant_id_str)
                    .order("name")
                    .execute()
                )
                return rows(response.data)

        return await self._run(_request, context="fetch all ingredients")

    async def get_ingredient(self, ingredient_id: UUID) -> Optional[Dict[str, Any]]:
        def _request() -> Optional[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("ingredients")
                    .select("*")
                    .eq("id", str(ingredient_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .limit(1)
                    .execute()
                )
                found = rows(response.data)
                return found[0] if found else None

        return await self._run(_request, context="get ingredient")

    async def create_ingredient(self, payload: IngredientPayload) -> Dict[str, Any]:
        record = {"restaurant_id": self.restaurant_id_str, **payload.model_dump(mode="json")}

        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = client.table("ingredients").insert(record).execute()
                return first_row(response.data, context="create ingredient")

        return await self._run(_request, context="create ingredient")

    async def update_ingredient(self, ingredient_id: UUID, changes: Dict[str, Any]) -> Dict[str, Any]:
        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = (
                    client.table("ingredients")
                    .update(changes)
                    .eq("id", str(ingredient_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .execute()
                )
                found = rows(response.data)
                if not found:
                    raise HTTPException(status_code=404, detail="Ingrediente não encontrado.")
                return found[0]

        return await self._run(_request, context="update ingredient")

    async def delete_ingredient(self, ingredient_id: UUID) -> None:
        def _request() -> None:
            with self._client() as client:
                (
                    client.table("ingredients")
                    .delete()
                    .eq("id", str(ingredient_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .execute()
                )

        await self._run(_request, context="delete ingredient")

    async def list_categories(self) -> List[str]:
        def _request() -> List[str]:
            with self._client() as client:
                response = (
                    client.table("ingredients")
                    .select("category")
                    .eq("restaurant_id", self.restaurant_id_str)
                    .not_.is_("category", "null")
                    .execute()
                )
                return sorted({row["category"] for row in rows(response.data) if row.get("category")})

        return await self._run(_request, context="list categories")

    async def list_movements(self, ingredient_id: UUID) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("stock_movements")
                    .select("*")
                    .eq("ingredient_id", str(ingredient_id))
                    .order("created_at", desc=True)
                    .execute()
                )
                return rows(response.data)

        return await self._run(_request, context="list stock movements")

    async def record_movement(
        self,
        ingredient: Dict[str, Any],
        movement_type: str,
        quantity: float,
        new_quantity: float,
        *,
        notes: Optional[str],
        user_id: Optional[str],
    ) -> Dict[str, Any]:
        """Persist the new quantity then log the movement that produced it."""

        ingredient_id = str(ingredient["id"])
        movement = {
            "ingredient_id": ingredient_id,
            "type": movement_type,
            "quantity": quantity,
            "previous_quantity": float(ingredient.get("quantity") or 0),
            "new_quantity": new_quantity,
            "notes": notes,
            "user_id": user_id,
        }

        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                (
                    client.table("ingredients")
                    .update({"quantity": new_quantity})
                    .eq("id", ingredient_id)
                    .eq("restaurant_id", self.restaurant_id_str)
                    .execute()
                )
                response = client.table("stock_movements").insert(movement).execute()
                return first_row(response.data, context="create stock movement")

        return await self._run(_request, context="create stock movement")


async def get_ingredients_dao(
    restaurant_id: UUID = Depends(get_current_restaurant_id),
    access_token: str = Depends(get_access_token),
) -> SupabaseIngredientsDAO:
    return SupabaseIngredientsDAO(restaurant_id, access_token)


async def get_name_validator() -> NameValidator:
    return validate_ingredient_name


async def create_stock_movement(
    dao: SupabaseIngredientsDAO,
    ingredient_id: UUID,
    movement_type: str,
    quantity: float,
    *,
    notes: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Apply a movement to an ingredient and log it."""

    ingredient = await dao.get_ingredient(ingredient_id)
    if ingredient is None:
        raise HTTPException(status_code=404, detail="Ingrediente não encontrado.")
    previous = float(ingredient.get("quantity") or 0)
    new_quantity = apply_movement(previous, movement_type, quantity)
    logger.info(
        "Stock movement %s on ingredient %s: %s -> %s",
        movement_type,
        ingredient_id,
        previous,
        new_quantity,
    )
    return await dao.record_movement(
        ingredient,
        movement_type,
        quantity,
        new_quantity,
        notes=notes,
        user_id=user_id,
    )


async def _ensure_valid_name(name: str, validator: NameValidator) -> None:
    verdict = await validator(name)
    if not verdict.get("is_valid"):
        raise HTTPException(
            status_code=422,
            detail=verdict.get("reason") or "Nome de ingrediente inválido.",
        )


def _with_status(row: Dict[str, Any], today: date) -> Dict[str, Any]:
    return {**row, "status": primary_status(row, today)}


@router.get("", response_model=IngredientPage)
async def list_ingredients_endpoint(
    page: int = Query(default=1, ge=1),
    search: Optional[str] = Query(default=None, max_length=120),
    category: Optional[str] = Query(default=None, max_length=80),
    status: StatusFilter = Query(default="all"),
    dao: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
) -> IngredientPage:
    today = date.today()
    result = await dao.list_ingredients(page, search=search, category=category, status=status, today=today)
    return IngredientPage(
        data=[IngredientRecord(**_with_status(row, today)) for row in result["data"]],
        count=result["count"],
        page=result["page"],
        total_pages=result["total_pages"],
    )


@router.get("/categories", response_model=List[str])
async def list_categories_endpoint(
    dao: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
) -> List[str]:
    return await dao.list_categories()


@router.post("/validate-name", response_model=NameValidationResponse)
async def validate_name_endpoint(
    payload: NameValidationPayload,
    validator: NameValidator = Depends(get_name_validator),
) -> NameValidationResponse:
    return NameValidationResponse(**await validator(payload.name))


@router.get("/{ingredient_id}", response_model=IngredientRecord)
async def get_ingredient_endpoint(
    ingredient_id: UUID,
    dao: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
) -> IngredientRecord:
    ingredient = await dao.get_ingredient(ingredient_id)
    if ingredient is None:
        raise HTTPException(status_code=404, detail="Ingrediente não encontrado.")
    return IngredientRecord(**_with_status(ingredient, date.today()))


@router.post("", response_model=IngredientRecord, status_code=201)
async def create_ingredient_endpoint(
    payload: IngredientPayload,
    dao: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
    validator: NameValidator = Depends(get_name_validator),
) -> IngredientRecord:
    await _ensure_valid_name(payload.name, validator)
    created = await dao.create_ingredient(payload)
    return IngredientRecord(**_with_status(created, date.today()))


@router.patch("/{ingredient_id}", response_model=IngredientRecord)
async def update_ingredient_endpoint(
    ingredient_id: UUID,
    payload: IngredientUpdatePayload,
    dao: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
    validator: NameValidator = Depends(get_name_validator),
) -> IngredientRecord:
    changes = payload.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nenhuma alteração informada.")
    if "name" in changes:
        await _ensure_valid_name(changes["name"], validator)
    updated = await dao.update_ingredient(ingredient_id, changes)
    return IngredientRecord(**_with_status(updated, date.today()))


@router.delete("/{ingredient_id}", status_code=204)
async def delete_ingredient_endpoint(
    ingredient_id: UUID,
    dao: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
) -> Response:
    await dao.delete_ingredient(ingredient_id)
    return Response(status_code=204)


@router.get("/{ingredient_id}/movements", response_model=List[StockMovementRecord])
async def list_movements_endpoint(
    ingredient_id: UUID,
    dao: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
) -> List[StockMovementRecord]:
    return [StockMovementRecord(**row) for row in await dao.list_movements(ingredient_id)]


@router.post("/{ingredient_id}/movements", response_model=StockMovementRecord, status_code=201)
async def create_movement_endpoint(
    ingredient_id: UUID,
    payload: StockMovementPayload,
    dao: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
    user_id: str = Depends(get_current_user_id),
) -> StockMovementRecord:
    movement = await create_stock_movement(
        dao,
        ingredient_id,
        payload.type,
        payload.quantity,
        notes=payload.notes,
        user_id=user_id,
    )
    return StockMovementRecord(**movement)
