"""Unit tests for RequestLoggingMiddleware."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from artistlink.infrastructure.observability.middleware import (
    RequestLoggingMiddleware,
    redact_query,
)


def _request(query: str) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/callback",
            "query_string": query.encode(),
            "headers": [],
        }
    )


class TestRequestLoggingMiddleware:
    """Test suite for RequestLoggingMiddleware."""

    @pytest.fixture
    def client(self) -> TestClient:
        app = FastAPI()
        app.add_middleware(RequestLoggingMiddleware)

        @app.get("/test")
        async def test_endpoint() -> dict[str, str]:
            return {"message": "test"}

        return TestClient(app)

    def test_generates_correlation_id(self, client: TestClient) -> None:
        response = client.get("/test")

        assert response.status_code == 200
        assert len(response.headers["X-Correlation-ID"]) == 36

    def test_echoes_incoming_correlation_id(self, client: TestClient) -> None:
        response = client.get("/test", headers={"X-Correlation-ID": "upstream-42"})

        assert response.headers["X-Correlation-ID"] == "upstream-42"

    def test_logs_request_and_completion(self, client: TestClient) -> None:
        with patch("artistlink.infrastructure.observability.middleware.logger") as mock_logger:
            client.get("/test?code=secret")

        assert mock_logger.info.call_count == 2
        started, finished = mock_logger.info.call_args_list
        assert started.kwargs["extra"]["query_params"] == "code=***"
        assert finished.kwargs["extra"]["status_code"] == 200
        assert "duration_ms" in finished.kwargs["extra"]


class TestRedactQuery:
    """Test secret masking in logged query strings."""

    def test_masks_oauth_params(self) -> None:
        assert redact_query(_request("code=abc&state=xyz&page=2")) == "code=***&state=***&page=2"

    def test_masks_webhook_params(self) -> None:
        redacted = redact_query(
            _request("hub.mode=subscribe&hub.verify_token=t&hub.challenge=123")
        )
        assert redacted == "hub.mode=subscribe&hub.verify_token=***&hub.challenge=***"

    def test_empty_query(self) -> None:
        assert redact_query(_request("")) == ""
