"""Secure interactions with Supabase authentication."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from backoffice.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)

AUTH_TIMEOUT_SECONDS = 10.0


class AuthenticationError(RuntimeError):
    """Base error raised when the auth flow cannot be completed."""


class InvalidCredentials(AuthenticationError):
    """Raised when Supabase explicitly rejects the credentials."""


@dataclass(frozen=True)
class AuthSession:
    """Subset of the session information needed by the frontend."""

    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int
    expires_at: int


async def login_with_password(email: str, password: str) -> AuthSession:
    """Perform a password grant request against Supabase."""

    response, data = await _auth_request(
        "POST",
        "/token?grant_type=password",
        json={"email": email, "password": password},
        context="login",
    )

    if response.status_code in (400, 401):
        message = (data or {}).get("error_description") or "Credenciais inválidas."
        raise InvalidCredentials(message)

    _raise_for_auth_status(response, data, default="Não foi possível verificar suas credenciais.")
    if not isinstance(data, dict):
        raise AuthenticationError("Resposta Supabase inválida.")

    required_fields = ("access_token", "refresh_token", "token_type", "expires_in")
    missing = [field for field in required_fields if field not in data]
    if missing:
        logger.error("Supabase login response missing fields: %s", missing)
        raise AuthenticationError("Resposta Supabase inválida.")

    try:
        expires_in = int(data.get("expires_in") or 0)
    except (TypeError, ValueError):
        raise AuthenticationError("Duração de expiração Supabase inválida.")

    raw_expires_at = data.get("expires_at")
    try:
        expires_at = int(raw_expires_at) if raw_expires_at is not None else int(time.time()) + expires_in
    except (TypeError, ValueError):
        expires_at = int(time.time()) + expires_in

    return AuthSession(
        access_token=str(data["access_token"]),
        refresh_token=str(data["refresh_token"]),
        token_type=str(data.get("token_type") or "bearer"),
        expires_in=expires_in,
        expires_at=expires_at,
    )


async def request_password_reset(email: str, redirect_to: Optional[str] = None) -> None:
    """Ask Supabase to send the password recovery e-mail."""

    params = {"redirect_to": redirect_to} if redirect_to else None
    response, data = await _auth_request(
        "POST",
        "/recover",
        json={"email": email},
        params=params,
        context="password reset",
    )
    _raise_for_auth_status(response, data, default="Não foi possível enviar o e-mail.")


async def update_password(access_token: str, password: str) -> None:
    """Change the password of the user owning the access token."""

    response, data = await _auth_request(
        "PUT",
        "/user",
        json={"password": password},
        access_token=access_token,
        context="password update",
    )
    if response.status_code == 401:
        raise InvalidCredentials("Sessão expirada. Entre novamente.")
    _raise_for_auth_status(response, data, default="Não foi possível redefinir a senha.")


async def _auth_request(
    method: str,
    path: str,
    *,
    json: Dict[str, Any],
    context: str,
    params: Optional[Dict[str, str]] = None,
    access_token: Optional[str] = None,
) -> tuple[httpx.Response, Optional[Dict[str, Any]]]:
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise AuthenticationError("Supabase não está configurado no servidor.")

    headers = {
        "apikey": SUPABASE_ANON_KEY,
        "Content-Type": "application/json",
    }
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    url = f"{SUPABASE_URL.rstrip('/')}/auth/v1{path}"

    try:
        async with httpx.AsyncClient(timeout=AUTH_TIMEOUT_SECONDS) as client:
            response = await client.request(method, url, json=json, params=params, headers=headers)
    except httpx.HTTPError as exc:  # pragma: no cover - network layer
        logger.error("Supabase %s unreachable: %s", context, exc)
        raise AuthenticationError("Não foi possível contatar o serviço de autenticação.") from exc

    try:
        data = response.json()
    except ValueError:
        data = None
    return response, data if isinstance(data, dict) else None


def _raise_for_auth_status(
    response: httpx.Response,
    data: Optional[Dict[str, Any]],
    *,
    default: str,
) -> None:
    if response.status_code >= 500:
        logger.error("Supabase auth failed (%s): %s", response.status_code, data)
        raise AuthenticationError("O serviço de autenticação está temporariamente indisponível.")
    if not response.is_success:
        detail = (data or {}).get("error_description") or (data or {}).get("msg") or default
        raise AuthenticationError(detail)


__all__ = [
    "login_with_password",
    "request_password_reset",
    "update_password",
    "AuthSession",
    "AuthenticationError",
    "InvalidCredentials",
]
