import asyncio

import pytest
from fastapi import HTTPException
from httpx import ConnectError
from postgrest import APIError as PostgrestAPIError

from backoffice.services.postgrest_client import extract_bearer_token, postgrest_status, raise_postgrest_error
from backoffice.services import supabase_dao
from backoffice.services.restaurant_service import SupabaseRestaurantDAO
from backoffice.services.supabase_dao import SupabaseDAO, first_row, rows


def _api_error(code: str, message: str = "falhou") -> PostgrestAPIError:
    return PostgrestAPIError({"message": message, "code": code, "hint": None, "details": None})


@pytest.mark.parametrize(
    ("code", "status_code"),
    [
        ("PGRST116", 404),
        ("23505", 409),
        ("23503", 409),
        ("401", 401),
        ("403", 403),
        ("404", 404),
        ("500", 502),
        ("XX000", 502),
        ("", 502),
    ],
)
def test_postgrest_error_mapping(code, status_code) -> None:
    with pytest.raises(HTTPException) as raised:
        raise_postgrest_error(_api_error(code), context="test")
    assert raised.value.status_code == status_code


def test_postgrest_status_only_reads_http_codes() -> None:
    assert postgrest_status(_api_error("403")) == 403
    assert postgrest_status(_api_error("23505")) is None


@pytest.mark.parametrize(
    ("header", "detail"),
    [
        (None, "Autenticação necessária."),
        ("Basic abc", "Token Bearer inválido."),
        ("Bearer a b", "Token Bearer inválido."),
        ("Bearer ", "Token Bearer ausente."),
    ],
)
def test_bearer_token_errors(header, detail) -> None:
    with pytest.raises(HTTPException) as raised:
        extract_bearer_token(header)
    assert raised.value.status_code == 401
    assert raised.value.detail == detail


def test_bearer_token() -> None:
    assert extract_bearer_token("bearer abc.def") == "abc.def"


def test_dao_maps_failures() -> None:
    dao = SupabaseDAO(None, "token")

    def _duplicate():
        raise _api_error("23505", "duplicate key value")

    def _offline():
        raise ConnectError("offline")

    with pytest.raises(HTTPException) as duplicate:
        asyncio.run(dao._run(_duplicate, context="insert supplier"))
    assert duplicate.value.status_code == 409

    with pytest.raises(HTTPException) as offline:
        asyncio.run(dao._run(_offline, context="list suppliers"))
    assert offline.value.status_code == 503

    assert asyncio.run(dao._run(lambda: [1], context="noop")) == [1]


def test_row_helpers() -> None:
    assert first_row([{"id": 1}, {"id": 2}], context="x") == {"id": 1}
    assert first_row({"id": 3}, context="x") == {"id": 3}
    assert rows([{"id": 1}, "junk", None]) == [{"id": 1}]
    assert rows(None) == []
    with pytest.raises(HTTPException) as raised:
        first_row([], context="x")
    assert raised.value.status_code == 502


class _OfflineQuery:
    def __init__(self, attempts):
        self.attempts = attempts

    def select(self, *args, **kwargs):
        return self

    def eq(self, *args, **kwargs):
        return self

    def order(self, *args, **kwargs):
        return self

    def limit(self, *args, **kwargs):
        return self

    def execute(self):
        self.attempts.append("execute")
        raise ConnectError("offline")


class _OfflineClient:
    def __init__(self, attempts):
        self.attempts = attempts

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def table(self, name):
        return _OfflineQuery(self.attempts)


def test_restaurant_read_fails_fast_when_offline(monkeypatch) -> None:
    attempts = []
    created = []

    def fake_client(access_token, *, prefer=None):
        created.append((access_token, prefer))
        return _OfflineClient(attempts)

    monkeypatch.setattr(supabase_dao, "create_postgrest_client", fake_client)
    dao = SupabaseRestaurantDAO("owner-1", "token")

    with pytest.raises(HTTPException) as raised:
        asyncio.run(dao.get_oldest_restaurant())

    assert raised.value.status_code == 503
    assert attempts == ["execute"]
    assert created == [("token", None)]
