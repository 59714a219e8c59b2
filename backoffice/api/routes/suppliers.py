"""Supplier directory and supplier product catalogue endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from backoffice.api.dependencies import get_access_token, get_current_restaurant_id
from backoffice.services.supabase_dao import SupabaseDAO, first_row, rows

router = APIRouter(prefix="/api/suppliers", tags=["Suppliers"])


class SupplierPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=160)
    contact_name: Optional[str] = Field(default=None, max_length=160)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=40)
    address: Optional[str] = Field(default=None, max_length=300)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SupplierUpdatePayload(SupplierPayload):
    name: Optional[str] = Field(default=None, min_length=1, max_length=160)


class SupplierRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: UUID
    restaurant_id: UUID
    name: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SupplierProductPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    ingredient_name: str = Field(..., min_length=1, max_length=120)
    unit: str = Field(..., min_length=1, max_length=20)
    price: Optional[float] = Field(default=None, ge=0)
    delivery_days: Optional[int] = Field(default=None, ge=0)


class SupplierProductUpdatePayload(SupplierProductPayload):
    ingredient_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    unit: Optional[str] = Field(default=None, min_length=1, max_length=20)


class SupplierProductRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: UUID
    supplier_id: UUID
    ingredient_name: str
    unit: str
    price: Optional[float] = None
    delivery_days: Optional[int] = None


class SupabaseSuppliersDAO(SupabaseDAO):
    """DAO for ``suppliers`` and ``supplier_products``."""

    async def list_suppliers(self) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("suppliers")
                    .select("*")
                    .eq("restaurant_id", self.restaurant_id_str)
                    .order("name")
                    .execute()
                )
                return rows(response.data)

        return await self._run(_request, context="list suppliers")

    async def get_supplier(self, supplier_id: UUID) -> Optional[Dict[str, Any]]:
        def _request() -> Optional[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("suppliers")
                    .select("*")
                    .eq("id", str(supplier_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .limit(1)
                    .execute()
                )
                found = rows(response.data)
                return found[0] if found else None

        return await self._run(_request, context="get supplier")

    async def create_supplier(self, payload: SupplierPayload) -> Dict[str, Any]:
        record = {"restaurant_id": self.restaurant_id_str, **payload.model_dump(mode="json")}

        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = client.table("suppliers").insert(record).execute()
                return first_row(response.data, context="create supplier")

        return await self._run(_request, context="create supplier")

    async def update_supplier(self, supplier_id: UUID, changes: Dict[str, Any]) -> Dict[str, Any]:
        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = (
                    client.table("suppliers")
                    .update(changes)
                    .eq("id", str(supplier_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .execute()
                )
                found = rows(response.data)
                if not found:
                    raise HTTPException(status_code=404, detail="Fornecedor não encontrado.")
                return found[0]

        return await self._run(_request, context="update supplier")

    async def delete_supplier(self, supplier_id: UUID) -> None:
        def _request() -> None:
            with self._client() as client:
                (
                    client.table("suppliers")
                    .delete()
                    .eq("id", str(supplier_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .execute()
                )

        await self._run(_request, context="delete supplier")

    async def list_products(self, supplier_id: UUID) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("supplier_products")
                    .select("*")
                    .eq("supplier_id", str(supplier_id))
                    .order("ingredient_name")
                    .execute()
                )
                return rows(response.data)

        return await self._run(_request, context="list supplier products")

    async def create_product(self, supplier_id: UUID, payload: SupplierProductPayload) -> Dict[str, Any]:
        record = {"supplier_id": str(supplier_id), **payload.model_dump(mode="json")}

        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = client.table("supplier_products").insert(record).execute()
                return first_row(response.data, context="create supplier product")

        return await self._run(_request, context="create supplier product")

    async def update_product(self, supplier_id: UUID, product_id: UUID, changes: Dict[str, Any]) -> Dict[str, Any]:
        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = (
                    client.table("supplier_products")
                    .update(changes)
                    .eq("id", str(product_id))
                    .eq("supplier_id", str(supplier_id))
                    .execute()
                )
                found = rows(response.data)
                if not found:
                    raise HTTPException(status_code=404, detail="Produto não encontrado.")
                return found[0]

        return await self._run(_request, context="update supplier product")

    async def delete_product(self, supplier_id: UUID, product_id: UUID) -> None:
        def _request() -> None:
            with self._client() as client:
                (
                    client.table("supplier_products")
                    .delete()
                    .eq("id", str(product_id))
                    .eq("supplier_id", str(supplier_id))
                    .execute()
                )

        await self._run(_request, context="delete supplier product")


async def get_suppliers_dao(
    restaurant_id: UUID = Depends(get_current_restaurant_id),
    access_token: str = Depends(get_access_token),
) -> SupabaseSuppliersDAO:
    return SupabaseSuppliersDAO(restaurant_id, access_token)


async def _require_supplier(dao: SupabaseSuppliersDAO, supplier_id: UUID) -> Dict[str, Any]:
    supplier = await dao.get_supplier(supplier_id)
    if supplier is None:
        raise HTTPException(status_code=404, detail="Fornecedor não encontrado.")
    return supplier


@router.get("", response_model=List[SupplierRecord])
async def list_suppliers_endpoint(dao: SupabaseSuppliersDAO = Depends(get_suppliers_dao)) -> List[SupplierRecord]:
    return [SupplierRecord(**row) for row in await dao.list_suppliers()]


@router.get("/{supplier_id}", response_model=SupplierRecord)
async def get_supplier_endpoint(
    supplier_id: UUID,
    dao: SupabaseSuppliersDAO = Depends(get_suppliers_dao),
) -> SupplierRecord:
    return SupplierRecord(**await _require_supplier(dao, supplier_id))


@router.post("", response_model=SupplierRecord, status_code=201)
async def create_supplier_endpoint(
    payload: SupplierPayload,
    dao: SupabaseSuppliersDAO = Depends(get_suppliers_dao),
) -> SupplierRecord:
    return SupplierRecord(**await dao.create_supplier(payload))


@router.patch("/{supplier_id}", response_model=SupplierRecord)
async def update_supplier_endpoint(
    supplier_id: UUID,
    payload: SupplierUpdatePayload,
    dao: SupabaseSuppliersDAO = Depends(get_suppliers_dao),
) -> SupplierRecord:
    changes = payload.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nenhuma alteração informada.")
    return SupplierRecord(**await dao.update_supplier(supplier_id, changes))


@router.delete("/{supplier_id}", status_code=204)
async def delete_supplier_endpoint(
    supplier_id: UUID,
    dao: SupabaseSuppliersDAO = Depends(get_suppliers_dao),
) -> Response:
    await dao.delete_supplier(supplier_id)
    return Response(status_code=204)


@router.get("/{supplier_id}/products", response_model=List[SupplierProductRecord])
async def list_products_endpoint(
    supplier_id: UUID,
    dao: SupabaseSuppliersDAO = Depends(get_suppliers_dao),
) -> List[SupplierProductRecord]:
    await _require_supplier(dao, supplier_id)
    return [SupplierProductRecord(**row) for row in await dao.list_products(supplier_id)]


@router.post("/{supplier_id}/products", response_model=SupplierProductRecord, status_code=201)
async def create_product_endpoint(
    supplier_id: UUID,
    payload: SupplierProductPayload,
    dao: SupabaseSuppliersDAO = Depends(get_suppliers_dao),
) -> SupplierProductRecord:
    await _require_supplier(dao, supplier_id)
    return SupplierProductRecord(**await dao.create_product(supplier_id, payload))


@router.patch("/{supplier_id}/products/{product_id}", response_model=SupplierProductRecord)
async def update_product_endpoint(
    supplier_id: UUID,
    product_id: UUID,
    payload: SupplierProductUpdatePayload,
    dao: SupabaseSuppliersDAO = Depends(get_suppliers_dao),
) -> SupplierProductRecord:
    await _require_supplier(dao, supplier_id)
    changes = payload.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nenhuma alteração informada.")
    return SupplierProductRecord(**await dao.update_product(supplier_id, product_id, changes))


@router.delete("/{supplier_id}/products/{product_id}", status_code=204)
async def delete_product_endpoint(
    supplier_id: UUID,
    product_id: UUID,
    dao: SupabaseSuppliersDAO = Depends(get_suppliers_dao),
) -> Response:
    await _require_supplier(dao, supplier_id)
    await dao.delete_product(supplier_id, product_id)
    return Response(status_code=204)
