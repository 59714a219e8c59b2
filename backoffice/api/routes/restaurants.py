"""Current restaurant endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from backoffice.api.dependencies import get_access_token, get_current_user_id
from backoffice.services.restaurant_service import (
    SupabaseRestaurantDAO,
    get_or_create_restaurant,
    update_restaurant_name,
)

router = APIRouter(prefix="/api/restaurants", tags=["Restaurants"])


class RestaurantCreatePayload(BaseModel):
    name: Optional[str] = Field(default=None, max_length=160)


class RestaurantUpdatePayload(BaseModel):
    name: str = Field(..., max_length=160)


class RestaurantRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: UUID
    name: str
    owner_id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


async def get_restaurant_dao(
    user_id: str = Depends(get_current_user_id),
    access_token: str = Depends(get_access_token),
) -> SupabaseRestaurantDAO:
    return SupabaseRestaurantDAO(user_id, access_token)


@router.get("/current", response_model=RestaurantRecord)
async def current_restaurant_endpoint(
    dao: SupabaseRestaurantDAO = Depends(get_restaurant_dao),
) -> RestaurantRecord:
    return RestaurantRecord(**await get_or_create_restaurant(dao))


@router.post("/current", response_model=RestaurantRecord)
async def ensure_restaurant_endpoint(
    payload: Optional[RestaurantCreatePayload] = None,
    dao: SupabaseRestaurantDAO = Depends(get_restaurant_dao),
) -> RestaurantRecord:
    return RestaurantRecord(**await get_or_create_restaurant(dao, payload.name if payload else None))


@router.patch("/current", response_model=RestaurantRecord)
async def rename_restaurant_endpoint(
    payload: RestaurantUpdatePayload,
    dao: SupabaseRestaurantDAO = Depends(get_restaurant_dao),
) -> RestaurantRecord:
    restaurant = await get_or_create_restaurant(dao)
    return RestaurantRecord(**await update_restaurant_name(dao, str(restaurant["id"]), payload.name))
