"""Per-user interface preferences."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from backoffice.api.dependencies import get_access_token, get_current_user_id
from backoffice.services.preferences import DEFAULT_PREFERENCES, PrimaryColor, Theme, resolve_palette
from backoffice.services.supabase_dao import SupabaseDAO, first_row, rows

router = APIRouter(prefix="/api/preferences", tags=["Preferences"])


class PreferencesPayload(BaseModel):
    theme: Optional[Theme] = None
    primary_color: Optional[PrimaryColor] = None
    layout: Optional[str] = Field(default=None, min_length=1, max_length=40)


class PreferencesRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    user_id: str
    theme: Theme = "light"
    primary_color: PrimaryColor = "orange"
    layout: str = "default"
    palette: Dict[str, str] = Field(default_factory=dict)


class SupabasePreferencesDAO(SupabaseDAO):
    def __init__(self, user_id: str, access_token: str):
        super().__init__(None, access_token)
        self.user_id = user_id

    async def get_preferences(self) -> Optional[Dict[str, Any]]:
        def _request() -> Optional[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("user_preferences")
                    .select("*")
                    .eq("user_id", self.user_id)
                    .limit(1)
                    .execute()
                )
                found = rows(response.data)
                return found[0] if found else None

        return await self._run(_request, context="get preferences")

    async def upsert_preferences(self, values: Dict[str, Any]) -> Dict[str, Any]:
        record = {"user_id": self.user_id, **values}

        def _request() -> Dict[str, Any]:
            with self._client(prefer="return=representation,resolution=merge-duplicates") as client:
                response = client.table("user_preferences").upsert(record, on_conflict="user_id").execute()
                return first_row(response.data, context="save preferences")

        return await self._run(_request, context="save preferences")


async def get_preferences_dao(
    user_id: str = Depends(get_current_user_id),
    access_token: str = Depends(get_access_token),
) -> SupabasePreferencesDAO:
    return SupabasePreferencesDAO(user_id, access_token)


def _with_palette(row: Dict[str, Any]) -> PreferencesRecord:
    merged = {**DEFAULT_PREFERENCES, **{key: value for key, value in row.items() if value is not None}}
    return PreferencesRecord(**merged, palette=resolve_palette(merged.get("primary_color")))


@router.get("", response_model=PreferencesRecord)
async def get_preferences_endpoint(
    dao: SupabasePreferencesDAO = Depends(get_preferences_dao),
) -> PreferencesRecord:
    current = await dao.get_preferences()
    if current is None:
        current = await dao.upsert_preferences(dict(DEFAULT_PREFERENCES))
    return _with_palette(current)


@router.put("", response_model=PreferencesRecord)
async def update_preferences_endpoint(
    payload: PreferencesPayload,
    dao: SupabasePreferencesDAO = Depends(get_preferences_dao),
) -> PreferencesRecord:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nenhuma alteração informada.")
    return _with_palette(await dao.upsert_preferences(changes))
