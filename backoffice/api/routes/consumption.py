"""Consumption forecasting endpoints."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from backoffice.api.dependencies import get_access_token, get_current_restaurant_id
from backoffice.services.consumption import (
    DEFAULT_ANALYSIS_DAYS,
    ConsumptionAnalysis,
    RuptureRisk,
    analyze_all_consumption,
    analyze_ingredient_consumption,
    get_rupture_risk_ingredients,
)
from backoffice.services.supabase_dao import SupabaseDAO, rows

router = APIRouter(prefix="/api/consumption", tags=["Consumption"])


class SupabaseConsumptionDAO(SupabaseDAO):
    async def fetch_ingredients(self, ingredient_id: Optional[UUID] = None) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                query = (
                    client.table("ingredients")
                    .select("id,name,unit,quantity")
                    .eq("restaurant_id", self.restaurant_id_str)
                )
                if ingredient_id is not None:
                    query = query.eq("id", str(ingredient_id))
                return rows(query.execute().data)

        return await self._run(_request, context="consumption ingredients")

    async def fetch_sale_movements(self, ingredient_ids: Sequence[str], since: datetime) -> List[Dict[str, Any]]:
        if not ingredient_ids:
            return []

        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("stock_movements")
                    .select("ingredient_id,quantity,created_at")
                    .in_("ingredient_id", list(ingredient_ids))
                    .eq("type", "sale")
                    .gte("created_at", since.isoformat())
                    .order("created_at")
                    .execute()
                )
                return rows(response.data)

        return await self._run(_request, context="consumption movements")


async def get_consumption_dao(
    restaurant_id: UUID = Depends(get_current_restaurant_id),
    access_token: str = Depends(get_access_token),
) -> SupabaseConsumptionDAO:
    return SupabaseConsumptionDAO(restaurant_id, access_token)


async def _analyze(
    dao: SupabaseConsumptionDAO,
    days: int,
    ingredient_id: Optional[UUID] = None,
) -> List[ConsumptionAnalysis]:
    ingredients = await dao.fetch_ingredients(ingredient_id)
    since = datetime.now(timezone.utc) - timedelta(days=days)
    movements = await dao.fetch_sale_movements([str(row["id"]) for row in ingredients if row.get("id")], since)
    return analyze_all_consumption(ingredients, movements, days, today=date.today())


@router.get("", response_model=List[ConsumptionAnalysis])
async def consumption_analysis_endpoint(
    days: int = Query(default=DEFAULT_ANALYSIS_DAYS, ge=1, le=365),
    dao: SupabaseConsumptionDAO = Depends(get_consumption_dao),
) -> List[ConsumptionAnalysis]:
    return await _analyze(dao, days)


@router.get("/rupture-risk", response_model=List[RuptureRisk])
async def rupture_risk_endpoint(
    days: int = Query(default=DEFAULT_ANALYSIS_DAYS, ge=1, le=365),
    dao: SupabaseConsumptionDAO = Depends(get_consumption_dao),
) -> List[RuptureRisk]:
    return get_rupture_risk_ingredients(await _analyze(dao, days))


@router.get("/{ingredient_id}", response_model=ConsumptionAnalysis)
async def ingredient_consumption_endpoint(
    ingredient_id: UUID,
    days: int = Query(default=DEFAULT_ANALYSIS_DAYS, ge=1, le=365),
    dao: SupabaseConsumptionDAO = Depends(get_consumption_dao),
) -> ConsumptionAnalysis:
    ingredients = await dao.fetch_ingredients(ingredient_id)
    if not ingredients:
        raise HTTPException(status_code=404, detail="Ingrediente não encontrado.")
    since = datetime.now(timezone.utc) - timedelta(days=days)
    movements = await dao.fetch_sale_movements([str(ingredient_id)], since)
    return analyze_ingredient_consumption(ingredients[0], movements, days, today=date.today())
