"""Financial transaction endpoints (revenue and expense ledger)."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Literal, Optional, Sequence
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError
from pydantic import BaseModel, ConfigDict, Field

from backoffice.api.dependencies import get_access_token, get_current_restaurant_id, get_current_user_id
from backoffice.services.financial import STATS_WINDOW_DAYS, compute_financial_stats, enrich_transaction_description
from backoffice.services.supabase_dao import SupabaseDAO, first_row, rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/financial", tags=["Financial"])

TransactionType = Literal["revenue", "expense"]


class TransactionPayload(BaseModel):
    type: TransactionType
    description: str = Field(..., min_length=1, max_length=1000)
    amount: float = Field(..., ge=0)
    category: Optional[str] = Field(default=None, max_length=80)
    reference_id: Optional[UUID] = None
    supplier_id: Optional[UUID] = None
    transaction_date: Optional[datetime] = None


class TransactionRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: UUID
    restaurant_id: UUID
    type: TransactionType
    description: str
    amount: float
    category: Optional[str] = None
    reference_id: Optional[UUID] = None
    supplier_id: Optional[UUID] = None
    user_id: Optional[str] = None
    transaction_date: datetime


class DailyFinancialPoint(BaseModel):
    date: str
    revenue: float
    expenses: float


class FinancialStatsResponse(BaseModel):
    total_revenue: float
    total_expenses: float
    net_profit: float
    revenue_last_30_days: List[DailyFinancialPoint]


class SupabaseFinancialDAO(SupabaseDAO):
    """DAO for ``financial_transactions``."""

    async def create_transaction(
        self,
        *,
        type: str,
        description: str,
        amount: float,
        user_id: Optional[str],
        category: Optional[str] = None,
        reference_id: Optional[str] = None,
        supplier_id: Optional[str] = None,
        transaction_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        record = {
            "restaurant_id": self.restaurant_id_str,
            "type": type,
            "description": description,
            "amount": amount,
            "category": category,
            "reference_id": reference_id,
            "supplier_id": supplier_id,
            "user_id": user_id,
            "transaction_date": (transaction_date or datetime.now(timezone.utc)).isoformat(),
        }

        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation") as client:
                response = client.table("financial_transactions").insert(record).execute()
                return first_row(response.data, context="create transaction")

        return await self._run(_request, context="create transaction")

    async def list_transactions(
        self,
        *,
        type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                query = (
                    client.table("financial_transactions")
                    .select("*")
                    .eq("restaurant_id", self.restaurant_id_str)
                    .order("transaction_date", desc=True)
                )
                if type:
                    query = query.eq("type", type)
                if start_date:
                    query = query.gte("transaction_date", start_date.isoformat())
                if end_date:
                    query = query.lte("transaction_date", end_date.isoformat())
                if limit:
                    query = query.limit(limit)
                return rows(query.execute().data)

        return await self._run(_request, context="list transactions")

    async def fetch_transaction_details(
        self,
        supplier_ids: Sequence[str],
        shopping_list_ids: Sequence[str],
    ) -> Dict[str, Any]:
        """Supplier names and shopping list items used to enrich descriptions."""

        def _request() -> Dict[str, Any]:
            with self._client() as client:
                suppliers: List[Dict[str, Any]] = []
                items: List[Dict[str, Any]] = []
                if supplier_ids:
                    suppliers = rows(
                        client.table("suppliers").select("id,name").in_("id", list(supplier_ids)).execute().data
                    )
                if shopping_list_ids:
                    items = rows(
                        client.table("shopping_list_items")
                        .select("shopping_list_id,ingredient_name,quantity_needed,unit,price")
                        .in_("shopping_list_id", list(shopping_list_ids))
                        .execute()
                        .data
                    )
                return {"suppliers": suppliers, "items": items}

        return await asyncio.to_thread(_request)

    async def fetch_transactions_since(self, since: datetime) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("financial_transactions")
                    .select("type,amount,transaction_date")
                    .eq("restaurant_id", self.restaurant_id_str)
                    .gte("transaction_date", since.isoformat())
                    .execute()
                )
                return rows(response.data)

        return await self._run(_request, context="financial stats")

    async def delete_transaction(self, transaction_id: UUID) -> None:
        def _request() -> None:
            with self._client() as client:
                (
                    client.table("financial_transactions")
                    .delete()
                    .eq("id", str(transaction_id))
                    .eq("restaurant_id", self.restaurant_id_str)
                    .execute()
                )

        await self._run(_request, context="delete transaction")


async def get_financial_dao(
    restaurant_id: UUID = Depends(get_current_restaurant_id),
    access_token: str = Depends(get_access_token),
) -> SupabaseFinancialDAO:
    return SupabaseFinancialDAO(restaurant_id, access_token)


async def list_enriched_transactions(dao: SupabaseFinancialDAO, **filters: Any) -> List[Dict[str, Any]]:
    """List transactions with supplier and shopping list details appended."""

    transactions = await dao.list_transactions(**filters)
    supplier_ids = sorted({str(row["supplier_id"]) for row in transactions if row.get("supplier_id")})
    list_ids = sorted(
        {
            str(row["reference_id"])
            for row in transactions
            if row.get("category") == "shopping_list" and row.get("reference_id")
        }
    )
    if not supplier_ids and not list_ids:
        return transactions

    try:
        details = await dao.fetch_transaction_details(supplier_ids, list_ids)
    except (PostgrestAPIError, HttpxError) as exc:
        logger.warning("Unable to load transaction details: %s", exc)
        return transactions

    supplier_names = {str(row.get("id")): row.get("name") for row in details["suppliers"]}
    items_by_list: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for item in details["items"]:
        items_by_list[str(item.get("shopping_list_id"))].append(item)

    enriched = []
    for transaction in transactions:
        list_items = None
        if transaction.get("category") == "shopping_list" and transaction.get("reference_id"):
            list_items = items_by_list.get(str(transaction["reference_id"]))
        enriched.append(
            enrich_transaction_description(
                transaction,
                supplier_name=supplier_names.get(str(transaction.get("supplier_id"))),
                list_items=list_items,
            )
        )
    return enriched


@router.get("/transactions", response_model=List[TransactionRecord])
async def list_transactions_endpoint(
    type: Optional[TransactionType] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    dao: SupabaseFinancialDAO = Depends(get_financial_dao),
) -> List[TransactionRecord]:
    transactions = await list_enriched_transactions(
        dao,
        type=type,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return [TransactionRecord(**row) for row in transactions]


@router.post("/transactions", response_model=TransactionRecord, status_code=201)
async def create_transaction_endpoint(
    payload: TransactionPayload,
    dao: SupabaseFinancialDAO = Depends(get_financial_dao),
    user_id: str = Depends(get_current_user_id),
) -> TransactionRecord:
    created = await dao.create_transaction(
        type=payload.type,
        description=payload.description,
        amount=payload.amount,
        user_id=user_id,
        category=payload.category,
        reference_id=str(payload.reference_id) if payload.reference_id else None,
        supplier_id=str(payload.supplier_id) if payload.supplier_id else None,
        transaction_date=payload.transaction_date,
    )
    return TransactionRecord(**created)


@router.get("/stats", response_model=FinancialStatsResponse)
async def financial_stats_endpoint(
    dao: SupabaseFinancialDAO = Depends(get_financial_dao),
) -> FinancialStatsResponse:
    since = datetime.now(timezone.utc) - timedelta(days=STATS_WINDOW_DAYS)
    transactions = await dao.fetch_transactions_since(since)
    return FinancialStatsResponse(**compute_financial_stats(transactions))


@router.delete("/transactions/{transaction_id}", status_code=204)
async def delete_transaction_endpoint(
    transaction_id: UUID,
    dao: SupabaseFinancialDAO = Depends(get_financial_dao),
) -> Response:
    await dao.delete_transaction(transaction_id)
    return Response(status_code=204)
