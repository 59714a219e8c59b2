"""CSV report downloads."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from backoffice.api.dependencies import get_access_token, get_current_restaurant_id
from backoffice.services.reports import (
    build_losses_csv,
    build_monthly_consumption_csv,
    build_stock_csv,
    month_bounds,
)
from backoffice.services.supabase_dao import SupabaseDAO, rows

router = APIRouter(prefix="/api/reports", tags=["Reports"])

LOSS_TYPES = ["waste", "expired"]


class SupabaseReportsDAO(SupabaseDAO):
    async def fetch_ingredients(self) -> List[Dict[str, Any]]:
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

        return await self._run(_request, context="stock report")

    async def fetch_movements(
        self,
        types: List[str],
        start: datetime,
        end: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Movements of this restaurant's ingredients with the ingredient embedded."""

        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                query = (
                    client.table("stock_movements")
                    .select("*, ingredients!inner(name,unit,category,restaurant_id)")
                    .eq("ingredients.restaurant_id", self.restaurant_id_str)
                    .in_("type", types)
                    .gte("created_at", start.isoformat())
                )
                if end is not None:
                    query = query.lte("created_at", end.isoformat())
                return rows(query.order("created_at", desc=True).execute().data)

        return await self._run(_request, context="movements report")


async def get_reports_dao(
    restaurant_id: UUID = Depends(get_current_restaurant_id),
    access_token: str = Depends(get_access_token),
) -> SupabaseReportsDAO:
    return SupabaseReportsDAO(restaurant_id, access_token)


def csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/stock")
async def stock_report_endpoint(dao: SupabaseReportsDAO = Depends(get_reports_dao)) -> Response:
    today = date.today()
    content = build_stock_csv(await dao.fetch_ingredients(), today)
    return csv_response(content, f"estoque_{today.isoformat()}.csv")


@router.get("/losses")
async def losses_report_endpoint(
    days: int = Query(default=30, ge=1, le=365),
    dao: SupabaseReportsDAO = Depends(get_reports_dao),
) -> Response:
    since = datetime.now(timezone.utc) - timedelta(days=days)
    content = build_losses_csv(await dao.fetch_movements(LOSS_TYPES, since))
    return csv_response(content, f"perdas_{date.today().isoformat()}.csv")


@router.get("/monthly-consumption")
async def monthly_consumption_report_endpoint(
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    dao: SupabaseReportsDAO = Depends(get_reports_dao),
) -> Response:
    today = date.today()
    month = month or today.month
    year = year or today.year
    try:
        start, end = month_bounds(month, year)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Mês inválido.") from exc
    content = build_monthly_consumption_csv(await dao.fetch_movements(["sale"], start, end))
    return csv_response(content, f"consumo_{year}_{month:02d}.csv")
