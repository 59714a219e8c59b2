from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends

from backoffice.api.dependencies import get_access_token, get_current_restaurant_id
from backoffice.services.dashboard_service import build_dashboard_stats

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/stats")
async def dashboard_stats_endpoint(
    restaurant_id: UUID = Depends(get_current_restaurant_id),
    access_token: str = Depends(get_access_token),
) -> Dict[str, Any]:
    return await build_dashboard_stats(access_token, str(restaurant_id))
