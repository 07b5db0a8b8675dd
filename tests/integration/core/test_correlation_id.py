import logging
import uuid

import pytest

pytestmark = pytest.mark.integration


class TestCorrelationIdMiddleware:
    def test_echoes_provided_request_id(self, client):
        response = client.get("/health", HTTP_X_REQUEST_ID="pedido-req-123")
        assert response["X-Request-ID"] == "pedido-req-123"

    def test_generates_uuid_when_missing(self, client):
        request_id = client.get("/health")["X-Request-ID"]
        assert str(uuid.UUID(request_id, version=4)) == request_id

    def test_api_responses_carry_request_id(self, api_client_with_correlation):
        client, cid = api_client_with_correlation

        response = client.get("/api/v1/orders/track/W-000000-00000/")

        assert response.status_code == 404
        assert response["X-Request-ID"] == cid

    def test_correlation_id_in_logs(self, client, caplog):
        custom_id = "log-test-correlation-456"
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID=custom_id)

        messages = [record.getMessage() for record in caplog.records]
        assert any(custom_id in message for message in messages), messages
        assert any("duration_ms" in message for message in messages), messages
