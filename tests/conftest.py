import base64
import json

import pytest

from backoffice.main import app
from backoffice.security.guards import reset_rate_limits
from backoffice.services import ai_service


def _encode_access_token(user_id: str) -> str:
    """Unsigned JWT carrying only the ``sub`` claim."""

    def _segment(payload: dict) -> str:
        raw = json.dumps(payload).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    return f"{_segment({'alg': 'none'})}.{_segment({'sub': user_id})}.signature"


@pytest.fixture(name="make_access_token")
def make_access_token_fixture():
    return _encode_access_token


@pytest.fixture(autouse=True)
def _isolate_app(monkeypatch):
    # No completion calls from tests; every AI path uses its fallback.
    monkeypatch.setattr(ai_service, "get_ai_client", lambda: None)
    reset_rate_limits()
    yield
    app.dependency_overrides.clear()
    reset_rate_limits()
