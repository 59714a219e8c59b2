"""Shopping list endpoints, including the smart replenishment list."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, Field

from backoffice.api.dependencies import get_access_token, get_current_restaurant_id, get_current_user_id
from backoffice.api.routes.financial import SupabaseFinancialDAO, get_financial_dao
from backoffice.api.routes.ingredients import SupabaseIngredientsDAO, get_ingredients_dao
from backoffice.services.shopping_planner import (
    SMART_LIST_NAME,
    describe_completed_list,
    plan_smart_shopping_items,
    purchased_total,
    sort_list_items,
)
from backoffice.services.supabase_dao import SupabaseDAO, first_row, rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/shopping-lists", tags=["Shopping lists"])

ListStatus = Literal["draft", "active", "completed"]
ItemPriority = Literal["low", "normal", "high", "urgent"]
ItemUnit = Literal["kg", "liters", "units", "g", "ml"]


class ShoppingListPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=160)


class ShoppingListUpdatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=160)
    status: Optional[ListStatus] = None
    supplier_id: Optional[UUID] = None


class SmartListPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(default=SMART_LIST_NAME, min_length=1, max_length=160)


class ShoppingListItemPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    ingredient_id: Optional[UUID] = None
    ingredient_name: str = Field(..., min_length=1, max_length=120)
    quantity_needed: float = Field(..., gt=0)
    unit: ItemUnit
    priority: ItemPriority = "normal"
    supplier_id: Optional[UUID] = None
    category: Optional[str] = Field(default=None, max_length=80)
    notes: Optional[str] = Field(default=None, max_length=1000)
    price: Optional[float] = Field(default=None, ge=0)


class ShoppingListItemUpdatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    ingredient_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    quantity_needed: Optional[float] = Field(default=None, gt=0)
    unit: Optional[ItemUnit] = None
    priority: Optional[ItemPriority] = None
    supplier_id: Optional[UUID] = None
    category: Optional[str] = Field(default=None, max_length=80)
    notes: Optional[str] = Field(default=None, max_length=1000)
    price: Optional[float] = Field(default=None, ge=0)
    is_purchased: Optional[bool] = None
    purchased_at: Optional[datetime] = None


class ShoppingListItemRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: UUID
    shopping_list_id: UUID
    ingredient_id: Optional[UUID] = None
    ingredient_name: str
    quantity_needed: float
    unit: str
    priority: ItemPriority = "normal"
    supplier_id: Optional[UUID] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    price: Optional[float] = None
    is_purchased: bool = False
    purchased_at: Optional[datetime] = None


class ShoppingListRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: UUID
    restaurant_id: UUID
    name: str
    status: ListStatus = "draft"
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ShoppingListDetail(ShoppingListRecord):
    items: List[ShoppingListItemRecord] = Field(default_factory=list)


class SupabaseShoppingListsDAO(SupabaseDAO):
    """DAO for ``shopping_lists`` and ``shopping_list_items``."""

    async def list_shopping_lists(self) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("shopping_lists")
                    .select("*")
                    .eq("restaurant_id", self.restaurant_id_str)
                    .order("created_at", desc=True)
                    .execute()
                )
                return rows(response.data)

        return await self._run(_request, context="list shopping lists")

    async def get_shopping_list(self, list_id: UUID) -> Optional[Dict[str, Any]]:
        """Return the list with its items, or None."""

        def _request() -> Optional[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("shopping_lists")
                    .select("*")
                    .eq("id", str(list_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .limit(1)
                    .execute()
                )
                found = rows(response.data)
                if not found:
                    return None
                items = (
                    client.table("shopping_list_items")
                    .select("*")
                    .eq("shopping_list_id", str(list_id))
                    .execute()
                )
                return {**found[0], "items": rows(items.data)}

        return await self._run(_request, context="get shopping list")

    async def create_shopping_list(self, name: str) -> Dict[str, Any]:
        record = {"restaurant_id": self.restaurant_id_str, "name": name, "status": "draft"}

        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = client.table("shopping_lists").insert(record).execute()
                return first_row(response.data, context="create shopping list")

        return await self._run(_request, context="create shopping list")

    async def update_shopping_list(self, list_id: UUID, changes: Dict[str, Any]) -> Dict[str, Any]:
        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = (
                    client.table("shopping_lists")
                    .update(changes)
                    .eq("id", str(list_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .execute()
                )
                found = rows(response.data)
                if not found:
                    raise HTTPException(status_code=404, detail="Lista de compras não encontrada.")
                return found[0]

        return await self._run(_request, context="update shopping list")

    async def delete_shopping_list(self, list_id: UUID) -> None:
        def _request() -> None:
            with self._client() as client:
                (
                    client.table("shopping_lists")
                    .delete()
                    .eq("id", str(list_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .execute()
                )

        await self._run(_request, context="delete shopping list")

    async def add_items(self, list_id: UUID, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        linked = [{"shopping_list_id": str(list_id), **item} for item in items]

        def _request() -> List[Dict[str, Any]]:
            with self._client(prefer="return=representation") as client:
                return rows(client.table("shopping_list_items").insert(linked).execute().data)

        return await self._run(_request, context="add shopping list items")

    async def update_item(self, list_id: UUID, item_id: UUID, changes: Dict[str, Any]) -> Dict[str, Any]:
        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = (
                    client.table("shopping_list_items")
                    .update(changes)
                    .eq("id", str(item_id))
                    .eq("shopping_list_id", str(list_id))
                    .execute()
                )
                found = rows(response.data)
                if not found:
                    raise HTTPException(status_code=404, detail="Item não encontrado.")
                return found[0]

        return await self._run(_request, context="update shopping list item")

    async def delete_item(self, list_id: UUID, item_id: UUID) -> None:
        def _request() -> None:
            with self._client() as client:
                (
                    client.table("shopping_list_items")
                    .delete()
                    .eq("id", str(item_id))
                    .eq("shopping_list_id", str(list_id))
                    .execute()
                )

        await self._run(_request, context="delete shopping list item")


async def get_shopping_lists_dao(
    restaurant_id: UUID = Depends(get_current_restaurant_id),
    access_token: str = Depends(get_access_token),
) -> SupabaseShoppingListsDAO:
    return SupabaseShoppingListsDAO(restaurant_id, access_token)


async def _require_list(dao: SupabaseShoppingListsDAO, list_id: UUID) -> Dict[str, Any]:
    shopping_list = await dao.get_shopping_list(list_id)
    if shopping_list is None:
        raise HTTPException(status_code=404, detail="Lista de compras não encontrada.")
    return shopping_list


def _detail(shopping_list: Dict[str, Any]) -> ShoppingListDetail:
    items = sort_list_items(shopping_list.get("items") or [])
    return ShoppingListDetail(**{**shopping_list, "items": items})


async def generate_smart_shopping_list(
    lists: SupabaseShoppingListsDAO,
    ingredients: SupabaseIngredientsDAO,
    name: str = SMART_LIST_NAME,
    *,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Create a list holding every ingredient that needs replenishing."""

    stock = await ingredients.fetch_all_ingredients()
    if not stock:
        raise HTTPException(
            status_code=400,
            detail="Nenhum ingrediente cadastrado. Cadastre ingredientes antes de gerar a lista.",
        )

    planned = plan_smart_shopping_items(stock, today or date.today())
    created = await lists.create_shopping_list(name)
    list_id = UUID(str(created["id"]))

    if planned:
        try:
            await lists.add_items(list_id, planned)
        except HTTPException:
            logger.error("Removing shopping list %s after its items failed to insert", list_id)
            await lists.delete_shopping_list(list_id)
            raise
    else:
        logger.info("Smart shopping list %s created empty: no ingredient needs replenishing", list_id)

    return await _require_list(lists, list_id)


async def complete_shopping_list(
    lists: SupabaseShoppingListsDAO,
    financial: SupabaseFinancialDAO,
    list_id: UUID,
    changes: Dict[str, Any],
    *,
    user_id: Optional[str],
    supplier_id: Optional[UUID] = None,
) -> Dict[str, Any]:
    """Mark a list completed and book the priced items as an expense."""

    shopping_list = await _require_list(lists, list_id)
    items = shopping_list.get("items") or []
    total = purchased_total(items)
    description = describe_completed_list(str(changes.get("name") or shopping_list.get("name")), items)
    if total > 0 and description:
        try:
            await financial.create_transaction(
                type="expense",
                description=description,
                amount=total,
                user_id=user_id,
                category="shopping_list",
                reference_id=str(list_id),
                supplier_id=str(supplier_id) if supplier_id else None,
            )
        except HTTPException as exc:
            logger.warning("Unable to record expense for shopping list %s: %s", list_id, exc.detail)

    changes = {**changes, "completed_at": datetime.now(timezone.utc).isoformat()}
    return await lists.update_shopping_list(list_id, changes)


@router.get("", response_model=List[ShoppingListRecord])
async def list_shopping_lists_endpoint(
    dao: SupabaseShoppingListsDAO = Depends(get_shopping_lists_dao),
) -> List[ShoppingListRecord]:
    return [ShoppingListRecord(**row) for row in await dao.list_shopping_lists()]


@router.post("", response_model=ShoppingListDetail, status_code=201)
async def create_shopping_list_endpoint(
    payload: ShoppingListPayload,
    dao: SupabaseShoppingListsDAO = Depends(get_shopping_lists_dao),
) -> ShoppingListDetail:
    created = await dao.create_shopping_list(payload.name)
    return _detail({**created, "items": []})


@router.post("/smart", response_model=ShoppingListDetail, status_code=201)
async def generate_smart_list_endpoint(
    payload: Optional[SmartListPayload] = None,
    dao: SupabaseShoppingListsDAO = Depends(get_shopping_lists_dao),
    ingredients: SupabaseIngredientsDAO = Depends(get_ingredients_dao),
) -> ShoppingListDetail:
    name = payload.name if payload else SMART_LIST_NAME
    return _detail(await generate_smart_shopping_list(dao, ingredients, name))


@router.get("/{list_id}", response_model=ShoppingListDetail)
async def get_shopping_list_endpoint(
    list_id: UUID,
    dao: SupabaseShoppingListsDAO = Depends(get_shopping_lists_dao),
) -> ShoppingListDetail:
    return _detail(await _require_list(dao, list_id))


@router.patch("/{list_id}", response_model=ShoppingListRecord)
async def update_shopping_list_endpoint(
    list_id: UUID,
    payload: ShoppingListUpdatePayload,
    dao: SupabaseShoppingListsDAO = Depends(get_shopping_lists_dao),
    financial: SupabaseFinancialDAO = Depends(get_financial_dao),
    user_id: str = Depends(get_current_user_id),
) -> ShoppingListRecord:
    changes = payload.model_dump(mode="json", exclude_unset=True, exclude={"supplier_id"})
    if not changes:
        raise HTTPException(status_code=400, detail="Nenhuma alteração informada.")
    if changes.get("status") == "completed":
        updated = await complete_shopping_list(
            dao,
            financial,
            list_id,
            changes,
            user_id=user_id,
            supplier_id=payload.supplier_id,
        )
    else:
        updated = await dao.update_shopping_list(list_id, changes)
    return ShoppingListRecord(**updated)


@router.delete("/{list_id}", status_code=204)
async def delete_shopping_list_endpoint(
    list_id: UUID,
    dao: SupabaseShoppingListsDAO = Depends(get_shopping_lists_dao),
) -> Response:
    await dao.delete_shopping_list(list_id)
    return Response(status_code=204)


@router.post("/{list_id}/items", response_model=ShoppingListItemRecord, status_code=201)
async def add_item_endpoint(
    list_id: UUID,
    payload: ShoppingListItemPayload,
    dao: SupabaseShoppingListsDAO = Depends(get_shopping_lists_dao),
) -> ShoppingListItemRecord:
    await _require_list(dao, list_id)
    created = await dao.add_items(list_id, [payload.model_dump(mode="json")])
    if not created:
        raise HTTPException(status_code=502, detail="O Supabase não retornou dados.")
    return ShoppingListItemRecord(**created[0])


@router.patch("/{list_id}/items/{item_id}", response_model=ShoppingListItemRecord)
async def update_item_endpoint(
    list_id: UUID,
    item_id: UUID,
    payload: ShoppingListItemUpdatePayload,
    dao: SupabaseShoppingListsDAO = Depends(get_shopping_lists_dao),
) -> ShoppingListItemRecord:
    await _require_list(dao, list_id)
    changes = payload.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nenhuma alteração informada.")
    if changes.get("is_purchased") and not changes.get("purchased_at"):
        changes["purchased_at"] = datetime.now(timezone.utc).isoformat()
    return ShoppingListItemRecord(**await dao.update_item(list_id, item_id, changes))


@router.delete("/{list_id}/items/{item_id}", status_code=204)
async def delete_item_endpoint(
    list_id: UUID,
    item_id: UUID,
    dao: SupabaseShoppingListsDAO = Depends(get_shopping_lists_dao),
) -> Response:
    await _require_list(dao, list_id)
    await dao.delete_item(list_id, item_id)
    return Response(status_code=204)
