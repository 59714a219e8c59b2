"""Base class for the tenant scoped PostgREST data access objects."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar
from uuid import UUID

from fastapi import HTTPException
from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError
from postgrest import SyncPostgrestClient

from backoffice.services.postgrest_client import create_postgrest_client, raise_postgrest_error

logger = logging.getLogger(__name__)
T = TypeVar("T")


class SupabaseDAO:
    """Runs blocking PostgREST queries in worker threads with the caller's token.

    Row level security does the tenant isolation; ``restaurant_id`` is still
    sent on every query so a user owning several restaurants only sees the
    selected one.
    """

    def __init__(self, restaurant_id: Optional[UUID], access_token: str):
        self.restaurant_id = restaurant_id
        self.restaurant_id_str = str(restaurant_id) if restaurant_id else None
        self.access_token = access_token

    def _client(self, *, prefer: Optional[str] = None) -> SyncPostgrestClient:
        return create_postgrest_client(self.access_token, prefer=prefer)

    async def _run(self, request: Callable[[], T], *, context: str) -> T:
        try:
            return await asyncio.to_thread(request)
        except PostgrestAPIError as exc:
            raise_postgrest_error(exc, context=context)
        except HttpxError as exc:
            logger.error("Supabase unreachable during %s: %s", context, exc)
            raise HTTPException(status_code=503, detail="Supabase está temporariamente inacessível.") from exc


def first_row(data: Any, *, context: str) -> Dict[str, Any]:
    """Return the first row of a PostgREST payload or fail with 502."""

    if isinstance(data, list) and data and isinstance(data[0], dict):
        return data[0]
    if isinstance(data, dict) and data:
        return data
    logger.error("Supabase returned no row for %s", context)
    raise HTTPException(status_code=502, detail="O Supabase não retornou dados.")


def rows(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    return []


__all__ = ["SupabaseDAO", "first_row", "rows"]
