"""Restaurant lookup and provisioning for the signed-in owner."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException

from backoffice.config.supabase_client import DEFAULT_RESTAURANT_NAME
from backoffice.services.supabase_dao import SupabaseDAO, first_row, rows

logger = logging.getLogger(__name__)


def restaurant_name_or_default(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    return cleaned or DEFAULT_RESTAURANT_NAME


class SupabaseRestaurantDAO(SupabaseDAO):
    """Owner scoped access to ``restaurants``; no restaurant is selected yet."""

    def __init__(self, owner_id: str, access_token: str):
        super().__init__(None, access_token)
        self.owner_id = owner_id

    async def get_oldest_restaurant(self) -> Optional[Dict[str, Any]]:
        def _request() -> Optional[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("restaurants")
                    .select("*")
                    .eq("owner_id", self.owner_id)
                    .order("created_at")
                    .limit(1)
                    .execute()
                )
                found = rows(response.data)
                return found[0] if found else None

        return await self._run(_request, context="get restaurant")

    async def create_restaurant(self, name: str) -> Dict[str, Any]:
        record = {"name": name, "owner_id": self.owner_id}

        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = client.table("restaurants").insert(record).execute()
                return first_row(response.data, context="create restaurant")

        return await self._run(_request, context="create restaurant")

    async def update_restaurant(self, restaurant_id: str, name: str) -> Dict[str, Any]:
        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = (
                    client.table("restaurants")
                    .update({"name": name})
                    .eq("id", restaurant_id)
                    .eq("owner_id", self.owner_id)
                    .execute()
                )
                found = rows(response.data)
                if not found:
                    raise HTTPException(status_code=404, detail="Restaurante não encontrado.")
                return found[0]

        return await self._run(_request, context="update restaurant")


async def get_or_create_restaurant(dao: SupabaseRestaurantDAO, name: Optional[str] = None) -> Dict[str, Any]:
    """Return the owner's oldest restaurant, creating one on first use."""

    restaurant = await dao.get_oldest_restaurant()
    if restaurant is not None:
        return restaurant
    created = await dao.create_restaurant(restaurant_name_or_default(name))
    logger.info("Created restaurant %s for owner %s", created.get("id"), dao.owner_id)
    return created


async def update_restaurant_name(dao: SupabaseRestaurantDAO, restaurant_id: str, name: str) -> Dict[str, Any]:
    cleaned = name.strip()
    if not cleaned:
        raise HTTPException(status_code=422, detail="O nome do restaurante é obrigatório.")
    return await dao.update_restaurant(restaurant_id, cleaned)


__all__ = [
    "SupabaseRestaurantDAO",
    "get_or_create_restaurant",
    "restaurant_name_or_default",
    "update_restaurant_name",
]
