"""Orchestration of the account sign-up flow.

A new account gets a confirmed Supabase user, an owned restaurant and the
default preferences row. Whatever was created is rolled back when a later
step fails.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Annotated

from postgrest import APIError as PostgrestAPIError
from pydantic import BaseModel, ConfigDict, EmailStr, StringConstraints, field_validator, model_validator
from supabase import Client
from supabase_auth.errors import AuthApiError, AuthError

from backoffice.config.supabase_client import DEFAULT_RESTAURANT_NAME, get_supabase_admin_client
from backoffice.services.preferences import DEFAULT_PREFERENCES

logger = logging.getLogger(__name__)


class SignupError(RuntimeError):
    """Base class for signup failures."""


class SignupValidationError(SignupError):
    """Raised when user-provided data cannot be accepted."""


@dataclass(frozen=True)
class SignupResult:
    """Artifacts created during the signup workflow."""

    user_id: str
    restaurant_id: str


class PasswordConfirmationPayload(BaseModel):
    """A new password typed twice; shared by sign-up and password reset."""

    password: Annotated[str, StringConstraints(min_length=8, max_length=72)]
    confirm_password: str

    @field_validator("password")
    @classmethod
    def _validate_password_strength(cls, value: str) -> str:
        if password_strength(value) < 4:
            raise ValueError(
                "A senha deve ter pelo menos 8 caracteres, com maiúsculas, minúsculas e números."
            )
        return value

    @model_validator(mode="after")
    def _passwords_match(self) -> "PasswordConfirmationPayload":
        if self.password != self.confirm_password:
            raise ValueError("As senhas não coincidem.")
        return self


class SignupPayload(PasswordConfirmationPayload):
    """Expected payload for the registration endpoint."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    restaurant_name: Optional[Annotated[str, StringConstraints(max_length=120)]] = None


def password_strength(value: str) -> int:
    """Count how many of the four strength checks the password passes."""

    checks = (
        len(value or "") >= 8,
        any(ch.isupper() for ch in value or ""),
        any(ch.islower() for ch in value or ""),
        any(ch.isdigit() for ch in value or ""),
    )
    return sum(1 for check in checks if check)


async def execute_signup(payload: SignupPayload) -> SignupResult:
    """Entry point used by the FastAPI route."""

    client = get_supabase_admin_client()
    if client is None:
        raise SignupError("Supabase não está configurado no servidor.")
    return await asyncio.to_thread(_run_signup, client, payload)


def _run_signup(client: Client, payload: SignupPayload) -> SignupResult:
    user_id = None
    restaurant_id = None
    completed = False

    try:
        user_id = _create_user(client, payload)
        restaurant_id = _create_restaurant(client, user_id, payload.restaurant_name)
        _create_default_preferences(client, user_id)
        completed = True
        return SignupResult(user_id=user_id, restaurant_id=restaurant_id)
    except SignupValidationError:
        raise
    except (AuthError, AuthApiError) as exc:
        logger.info("Supabase auth rejected signup: %s", exc)
        raise SignupValidationError(str(exc)) from exc
    except PostgrestAPIError as exc:
        logger.error("Supabase data layer rejected signup: %s", exc)
        raise SignupError("Não foi possível criar a conta no momento.") from exc
    finally:
        if not completed:
            _rollback(client, user_id=user_id, restaurant_id=restaurant_id)


def _create_user(client: Client, payload: SignupPayload) -> str:
    response = client.auth.admin.create_user(
        {
            "email": payload.email,
            "password": payload.password,
            "email_confirm": True,
        }
    )
    user = response.user
    if not user or not user.id:
        raise SignupError("Não foi possível obter o identificador do usuário Supabase.")
    return user.id


def _create_restaurant(client: Client, user_id: str, restaurant_name: Optional[str]) -> str:
    name = (restaurant_name or "").strip() or DEFAULT_RESTAURANT_NAME
    response = client.table("restaurants").insert({"name": name, "owner_id": user_id}).execute()
    restaurant_row = _first_row(response.data)
    restaurant_id = restaurant_row.get("id")
    if not restaurant_id:
        raise SignupError("Não foi possível obter o identificador do restaurante.")
    return restaurant_id


def _create_default_preferences(client: Client, user_id: str) -> None:
    client.table("user_preferences").upsert(
        {"user_id": user_id, **DEFAULT_PREFERENCES},
        on_conflict="user_id",
    ).execute()


def _first_row(data: Optional[Any]) -> Dict[str, Any]:
    if isinstance(data, list) and data:
        first = data[0]
        if isinstance(first, dict):
            return first
    raise SignupError("O Supabase não retornou dados após a inserção.")


def _rollback(client: Client, *, user_id: Optional[str], restaurant_id: Optional[str]) -> None:
    """Attempt best-effort cleanup if the workflow failed midway."""

    if restaurant_id:
        try:
            client.table("restaurants").delete().eq("id", restaurant_id).execute()
        except PostgrestAPIError:  # pragma: no cover - best effort cleanup
            logger.warning("Unable to rollback restaurant %s", restaurant_id, exc_info=True)

    if user_id:
        try:
            client.auth.admin.delete_user(user_id)
        except (AuthError, AuthApiError):  # pragma: no cover - best effort cleanup
            logger.warning("Unable to rollback user %s", user_id, exc_info=True)


__all__ = [
    "SignupError",
    "PasswordConfirmationPayload",
    "SignupPayload",
    "SignupResult",
    "SignupValidationError",
    "execute_signup",
    "password_strength",
]
