"""Stock alert endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict

from backoffice.api.dependencies import get_access_token, get_current_restaurant_id
from backoffice.services.supabase_dao import SupabaseDAO, rows

router = APIRouter(prefix="/api/alerts", tags=["Alerts"])


class AlertRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: UUID
    ingredient_id: Optional[UUID] = None
    restaurant_id: UUID
    type: Literal["low_stock", "expiring_soon", "expired"]
    message: Optional[str] = None
    is_read: bool = False
    created_at: Optional[datetime] = None


class SupabaseAlertsDAO(SupabaseDAO):
    async def list_alerts(self, *, unread_only: bool = False) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                query = client.table("alerts").select("*").eq("restaurant_id", self.restaurant_id_str)
                if unread_only:
                    query = query.eq("is_read", False)
                return rows(query.order("created_at", desc=True).execute().data)

        return await self._run(_request, context="list alerts")

    async def mark_read(self, alert_id: UUID) -> None:
        def _request() -> None:
            with self._client() as client:
                (
                    client.table("alerts")
                    .update({"is_read": True})
                    .eq("id", str(alert_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .execute()
                )

        await self._run(_request, context="mark alert read")


async def get_alerts_dao(
    restaurant_id: UUID = Depends(get_current_restaurant_id),
    access_token: str = Depends(get_access_token),
) -> SupabaseAlertsDAO:
    return SupabaseAlertsDAO(restaurant_id, access_token)


@router.get("", response_model=List[AlertRecord])
async def list_alerts_endpoint(
    unread_only: bool = Query(default=False),
    dao: SupabaseAlertsDAO = Depends(get_alerts_dao),
) -> List[AlertRecord]:
    return [AlertRecord(**row) for row in await dao.list_alerts(unread_only=unread_only)]


@router.post("/{alert_id}/read", status_code=204)
async def mark_alert_read_endpoint(
    alert_id: UUID,
    dao: SupabaseAlertsDAO = Depends(get_alerts_dao),
) -> Response:
    await dao.mark_read(alert_id)
    return Response(status_code=204)
