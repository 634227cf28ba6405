"""Test middleware functionality."""

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from safeguard_api.app.middleware import (
    REQUEST_ID_HEADER,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)


def test_security_headers(client: TestClient) -> None:
    """Ensure security headers are correctly added to all responses."""
    response = client.get("/")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Strict-Transport-Security"] == "max-age=31536000; includeSubDomains"
    assert "script-src" in response.headers["Content-Security-Policy"]
    assert "Referrer-Policy" in response.headers
    assert response.headers["Cache-Control"] == "no-store"


def test_security_headers_on_error_responses(client: TestClient) -> None:
    for response in (
        client.post("/analyze", json={"text": ""}),
        client.get("/does-not-exist"),
    ):
        assert response.status_code >= 400
        assert "X-Content-Type-Options" in response.headers
        assert "Strict-Transport-Security" in response.headers


def test_request_id_generated(client: TestClient) -> None:
    first = client.get("/health")
    second = client.get("/health")
    assert first.headers[REQUEST_ID_HEADER]
    assert first.headers[REQUEST_ID_HEADER] != second.headers[REQUEST_ID_HEADER]


def test_request_id_reused_from_caller(client: TestClient) -> None:
    response = client.get("/health", headers={REQUEST_ID_HEADER: "abc-123"})
    assert response.headers[REQUEST_ID_HEADER] == "abc-123"


def test_request_id_available_to_endpoints() -> None:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)

    @app.get("/state")
    async def state_endpoint(request: Request) -> dict:
        return {"request_id": request.state.request_id}

    with TestClient(app) as test_client:
        response = test_client.get("/state", headers={REQUEST_ID_HEADER: "given"})
    assert response.json() == {"request_id": "given"}


def test_access_log_line(client: TestClient, caplog) -> None:
    with caplog.at_level("INFO", logger="safeguard_api.app.middleware"):
        client.get("/health", headers={REQUEST_ID_HEADER: "log-me"})
    messages = [record.getMessage() for record in caplog.records]
    assert any("GET /health -> 200" in message and "log-me" in message for message in messages)


def test_security_headers_standalone() -> None:
    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware)

    @app.get("/test")
    async def test_endpoint() -> dict:
        return {"message": "test"}

    with TestClient(app) as test_client:
        response = test_client.get("/test")
    assert response.headers["X-Frame-Options"] == "DENY"


def test_unhandled_error_becomes_internal_error(caplog) -> None:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    @app.get("/fail")
    async def failing_endpoint() -> dict:
        raise RuntimeError("boom")

    with caplog.at_level("INFO", logger="safeguard_api.app.middleware"):
        with TestClient(app) as test_client:
            response = test_client.get("/fail")

    assert response.status_code == 500
    assert response.json()["error"] == "InternalError"
    assert "boom" not in response.text
    assert response.headers[REQUEST_ID_HEADER]
    assert response.headers["X-Frame-Options"] == "DENY"
    messages = [record.getMessage() for record in caplog.records]
    assert any("GET /fail -> 500" in message for message in messages)
