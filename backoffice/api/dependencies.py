"""Request dependencies shared by the tenant scoped routers."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException

from backoffice.services.auth_utils import get_user_id
from backoffice.services.postgrest_client import extract_bearer_token


async def get_current_restaurant_id(
    x_restaurant_id: Optional[str] = Header(default=None, alias="X-Restaurant-Id"),
) -> UUID:
    """Resolve the restaurant identifier from the current request."""

    if not x_restaurant_id:
        raise HTTPException(status_code=401, detail="Restaurante não selecionado.")
    try:
        return UUID(x_restaurant_id)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Identificador de restaurante inválido.") from exc


async def get_access_token(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    """Extract the Supabase bearer token from the Authorization header."""

    return extract_bearer_token(authorization)


async def get_current_user_id(access_token: str = Depends(get_access_token)) -> str:
    return get_user_id(access_token)


__all__ = ["get_access_token", "get_current_restaurant_id", "get_current_user_id"]
