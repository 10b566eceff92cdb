from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from starlette.requests import Request

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

if TYPE_CHECKING:  # pragma: no cover - hints only
    from fastapi.testclient import TestClient

JSON = {"Accept": "application/json"}
HTML = {"Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"}


@pytest.fixture
def make_client(monkeypatch: pytest.MonkeyPatch) -> Iterator[Callable[[dict[str, str] | None], TestClient]]:
    """Factory fixture to build a TestClient with optional environment overrides."""

    def factory(env: dict[str, str] | None = None) -> TestClient:
        from faultline import config as app_config
        from faultline.main import create_app
        from fastapi.testclient import TestClient

        for key, value in (env or {}).items():
            monkeypatch.setenv(key, value)

        app_config.get_settings.cache_clear()
        app = create_app()
        return TestClient(app)

    yield factory

    from faultline import config as app_config

    app_config.get_settings.cache_clear()


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


def build_request(path: str = "/", headers: dict[str, str] | None = None, endpoint=None) -> Request:
    """Bare ``Request`` for calling resolvers directly."""

    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "headers": [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()],
        "state": {},
    }
    if endpoint is not None:
        scope["endpoint"] = endpoint
    return Request(scope)
