from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from backoffice.api.routes import auth as auth_routes
from backoffice.main import app
from backoffice.schemas import ResetPasswordPayload
from backoffice.security.guards import auth_guard
from backoffice.services.auth_service import AuthenticationError, AuthSession, InvalidCredentials
from backoffice.services.signup_service import SignupPayload, SignupResult, SignupValidationError

LOGIN = {"email": "chef@example.com", "password": "segredo123"}


@pytest.fixture(name="api_client")
def client_fixture():
    with TestClient(app) as client:
        yield client


def _session() -> AuthSession:
    return AuthSession(
        access_token="access",
        refresh_token="refresh",
        token_type="bearer",
        expires_in=3600,
        expires_at=1_700_000_000,
    )


def test_login_returns_session(api_client: TestClient, monkeypatch) -> None:
    async def fake_login(email, password):
        assert email == LOGIN["email"]
        return _session()

    monkeypatch.setattr(auth_routes, "login_with_password", fake_login)
    response = api_client.post("/api/auth/login", json=LOGIN)

    assert response.status_code == 200
    assert response.json() == {
        "access_token": "access",
        "refresh_token": "refresh",
        "token_type": "bearer",
        "expires_in": 3600,
        "expires_at": 1_700_000_000,
    }


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (InvalidCredentials("Email ou senha inválidos."), 401),
        (AuthenticationError("Serviço de autenticação indisponível."), 502),
    ],
)
def test_login_error_mapping(api_client: TestClient, monkeypatch, error, status_code) -> None:
    async def fake_login(email, password):
        raise error

    monkeypatch.setattr(auth_routes, "login_with_password", fake_login)
    response = api_client.post("/api/auth/login", json=LOGIN)

    assert response.status_code == status_code
    assert response.json()["detail"] == str(error)


def test_login_is_rate_limited(api_client: TestClient, monkeypatch) -> None:
    async def fake_login(email, password):
        raise InvalidCredentials("Email ou senha inválidos.")

    monkeypatch.setattr(auth_routes, "login_with_password", fake_login)
    statuses = [api_client.post("/api/auth/login", json=LOGIN).status_code for _ in range(6)]

    assert statuses == [401, 401, 401, 401, 401, 429]


def test_cross_origin_login_is_rejected(api_client: TestClient, monkeypatch) -> None:
    async def fake_login(email, password):
        return _session()

    monkeypatch.setattr(auth_routes, "login_with_password", fake_login)
    rejected = api_client.post("/api/auth/login", json=LOGIN, headers={"Origin": "https://evil.example"})
    assert rejected.status_code == 403

    same_origin = api_client.post("/api/auth/login", json=LOGIN, headers={"Origin": "http://testserver"})
    assert same_origin.status_code == 200


def test_signup_success_and_validation(api_client: TestClient, monkeypatch) -> None:
    user_id, restaurant_id = str(uuid4()), str(uuid4())
    payload = {
        "email": "novo@example.com",
        "password": "Senha1234",
        "confirm_password": "Senha1234",
        "restaurant_name": "Cantina",
    }

    async def fake_signup(received):
        assert received.restaurant_name == "Cantina"
        return SignupResult(user_id=user_id, restaurant_id=restaurant_id)

    monkeypatch.setattr(auth_routes, "execute_signup", fake_signup)
    response = api_client.post("/api/auth/signup", json=payload)
    assert response.status_code == 200
    assert response.json()["user_id"] == user_id
    assert response.json()["restaurant_id"] == restaurant_id

    async def rejecting_signup(received):
        raise SignupValidationError("Este email já está cadastrado.")

    monkeypatch.setattr(auth_routes, "execute_signup", rejecting_signup)
    conflict = api_client.post("/api/auth/signup", json=payload)
    assert conflict.status_code == 422
    assert conflict.json()["detail"] == "Este email já está cadastrado."


def test_signup_rejects_weak_password(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/auth/signup",
        json={"email": "novo@example.com", "password": "fraca", "confirm_password": "fraca"},
    )
    assert response.status_code == 422


def test_forgot_password_answers_uniformly(api_client: TestClient, monkeypatch) -> None:
    requested = []

    async def fake_reset(email, redirect_to=None):
        requested.append((email, redirect_to))

    monkeypatch.setattr(auth_routes, "request_password_reset", fake_reset)
    response = api_client.post(
        "/api/auth/forgot-password",
        json={"email": "chef@example.com", "redirect_to": "http://localhost:3000/reset-password"},
    )

    assert response.status_code == 200
    assert "Se o email estiver cadastrado" in response.json()["message"]
    assert requested == [("chef@example.com", "http://localhost:3000/reset-password")]


def test_reset_password(api_client: TestClient, monkeypatch, make_access_token) -> None:
    updated = []

    async def fake_update(access_token, password):
        updated.append((access_token, password))

    monkeypatch.setattr(auth_routes, "update_password", fake_update)
    token = make_access_token("user-1")
    headers = {"Authorization": f"Bearer {token}"}

    mismatch = api_client.post(
        "/api/auth/reset-password",
        json={"password": "NovaSenha1", "confirm_password": "OutraSenha1"},
        headers=headers,
    )
    assert mismatch.status_code == 422

    response = api_client.post(
        "/api/auth/reset-password",
        json={"password": "NovaSenha1", "confirm_password": "NovaSenha1"},
        headers=headers,
    )
    assert response.status_code == 200
    assert updated == [(token, "NovaSenha1")]


def test_reset_password_requires_bearer(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/auth/reset-password",
        json={"password": "NovaSenha1", "confirm_password": "NovaSenha1"},
    )
    assert response.status_code == 401


def test_unknown_guard_scope() -> None:
    with pytest.raises(ValueError):
        auth_guard("checkout")


@pytest.mark.parametrize("model", [SignupPayload, ResetPasswordPayload])
def test_password_rules_are_shared(model) -> None:
    extra = {"email": "novo@example.com"} if model is SignupPayload else {}

    with pytest.raises(ValidationError, match="maiúsculas, minúsculas e números"):
        model(password="semnumeros", confirm_password="semnumeros", **extra)
    with pytest.raises(ValidationError, match="As senhas não coincidem"):
        model(password="Senha1234", confirm_password="Senha12345", **extra)
    assert model(password="Senha1234", confirm_password="Senha1234", **extra).password == "Senha1234"
