"""PostgREST access for the tenant scoped DAOs.

Every request is made with the caller's Supabase access token, so row level
security decides what each restaurant owner can read and write.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from fastapi import HTTPException
from postgrest import APIError as PostgrestAPIError
from postgrest import SyncPostgrestClient

from backoffice.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)

NO_ROWS_CODE = "PGRST116"
GENERIC_DETAIL = "Erro ao comunicar com o Supabase."

# PostgREST/Postgres error code -> (status, detail)
_CODE_ERRORS: Dict[str, Tuple[int, str]] = {
    NO_ROWS_CODE: (404, "Registro não encontrado."),
    "23505": (409, "Já existe um registro com esses dados."),
    "23503": (409, "O registro está vinculado a outros dados."),
    "42501": (403, "Acesso negado ao recurso solicitado."),
    "PGRST301": (401, "Autenticação Supabase necessária."),
}

_STATUS_ERRORS: Dict[int, str] = {
    401: "Autenticação Supabase necessária.",
    403: "Acesso negado ao recurso solicitado.",
    404: "Registro não encontrado.",
}


def extract_bearer_token(header_value: Optional[str]) -> str:
    """Return the token of an ``Authorization: Bearer <token>`` header."""

    if not header_value:
        raise HTTPException(status_code=401, detail="Autenticação necessária.")
    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != "bearer" or " " in token.strip():
        raise HTTPException(status_code=401, detail="Token Bearer inválido.")
    if not token.strip():
        raise HTTPException(status_code=401, detail="Token Bearer ausente.")
    return token.strip()


def create_postgrest_client(
    access_token: str,
    *,
    prefer: Optional[str] = None,
) -> SyncPostgrestClient:
    """PostgREST client for ``{SUPABASE_URL}/rest/v1`` acting as the token's user."""

    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise HTTPException(status_code=500, detail="Supabase não está configurado.")

    headers = {"apikey": SUPABASE_ANON_KEY, "Accept": "application/json"}
    if prefer:
        headers["Prefer"] = prefer
    client = SyncPostgrestClient(f"{SUPABASE_URL.rstrip('/')}/rest/v1", headers=headers)
    client.auth(access_token)
    return client


def postgrest_status(exc: PostgrestAPIError) -> Optional[int]:
    """The HTTP status carried by the error code, when the code is one."""

    code = str(getattr(exc, "code", "") or "")
    if len(code) == 3 and code.isdigit() and 400 <= int(code) < 600:
        return int(code)
    return None


def raise_postgrest_error(exc: PostgrestAPIError, *, context: str) -> None:
    """Log a PostgREST failure and re-raise it as an HTTPException."""

    code = str(getattr(exc, "code", "") or "")
    if code in _CODE_ERRORS:
        status_code, detail = _CODE_ERRORS[code]
    else:
        status_code = postgrest_status(exc) or 502
        detail = _STATUS_ERRORS.get(status_code, GENERIC_DETAIL)
        if status_code not in _STATUS_ERRORS:
            status_code = 502

    log = logger.info if status_code == 404 else logger.error
    log("%s failed (%s, code=%s): %s", context, status_code, code or "-", exc.message or GENERIC_DETAIL)
    raise HTTPException(status_code=status_code, detail=detail) from exc


__all__ = [
    "create_postgrest_client",
    "extract_bearer_token",
    "postgrest_status",
    "raise_postgrest_error",
]
