"""Test configuration and fixtures."""

import json
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from safeguard_api.app.api.routes import get_http_client
from safeguard_api.app.config import Settings, get_settings
from safeguard_api.app.main import create_app

TEST_API_KEY = "sk-test-key"

CATEGORY_KEYS = [
    "hate",
    "harassment",
    "self-harm",
    "sexual",
    "violence",
    "hate/threatening",
    "harassment/threatening",
]


def moderation_payload(
    flagged_categories: tuple[str, ...] = (), categories: dict[str, bool] | None = None
) -> dict[str, Any]:
    """Build a provider response flagging ``flagged_categories``."""
    if categories is None:
        categories = {key: key in flagged_categories for key in CATEGORY_KEYS}
    return {
        "id": "modr-test",
        "model": "omni-moderation-latest",
        "results": [
            {
                "flagged": any(categories.values()),
                "categories": categories,
                "category_scores": {
                    key: 0.9 if value else 0.01 for key, value in categories.items()
                },
            }
        ],
    }


class StubUpstream:
    """Stands in for the moderation provider behind httpx.MockTransport.

    Every request is recorded in ``calls``. The reply is controlled with
    ``status_code``, ``payload`` (JSON), ``content`` (raw bytes),
    ``headers`` or ``exception`` (raised instead of replying).
    """

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self.status_code = 200
        self.payload: Any = moderation_payload()
        self.content: bytes | None = None
        self.headers: dict[str, str] = {}
        self.exception: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.exception is not None:
            raise self.exception
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content, headers=self.headers)
        return httpx.Response(self.status_code, json=self.payload, headers=self.headers)

    @property
    def last_body(self) -> dict[str, Any]:
        return json.loads(self.calls[-1].content)


@pytest.fixture(autouse=True)
def disable_telemetry(monkeypatch: pytest.MonkeyPatch) -> None:
    """Disable OpenTelemetry for all tests.

    Args:
        monkeypatch: pytest's monkeypatch fixture for modifying values.
    """
    monkeypatch.setenv("OTEL_ENABLED", "false")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    monkeypatch.setenv("OTEL_TRACES_EXPORTER", "none")

    from unittest.mock import MagicMock

    from safeguard_api.app import telemetry
    from safeguard_api.app.config import settings

    monkeypatch.setattr(telemetry, "setup_telemetry", MagicMock())
    monkeypatch.setattr(telemetry, "shutdown_telemetry", MagicMock())
    monkeypatch.setattr(settings, "OTEL_ENABLED", False)

    telemetry._tracer_provider = None
    telemetry._span_processors.clear()
    telemetry._is_setup_complete = False


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a configured credential and the default limits."""
    return Settings(OPENAI_API_KEY=TEST_API_KEY, MODERATION_TIMEOUT=1.0)


@pytest.fixture
def upstream() -> StubUpstream:
    return StubUpstream()


@pytest.fixture
def http_client_factory() -> Iterator[Callable[[Any], httpx.AsyncClient]]:
    """Build AsyncClients routed to a handler instead of the network."""

    def factory(handler: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    yield factory


@pytest.fixture
def app(
    test_settings: Settings,
    upstream: StubUpstream,
    http_client_factory: Callable[[Any], httpx.AsyncClient],
) -> FastAPI:
    """Application wired to the stub provider and test settings."""
    application = create_app()
    stub_client = http_client_factory(upstream)
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_http_client] = lambda: stub_client
    return application


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Create a test client for the app with lifespan events executed.

    Args:
        app: The FastAPI app wired to the stub provider.

    Yields:
        TestClient: A configured test client for making requests.
    """
    with TestClient(app) as test_client:
        yield test_client
