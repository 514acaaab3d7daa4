"""
Tests for the health check and HTTP middleware.
"""


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["components"]["database"] == "healthy"
        assert body["components"]["embeddings"] in ("configured", "not_configured")
        assert body["components"]["llm"] in ("configured", "not_configured")
        assert body["version"]


class TestMiddleware:

    def test_security_headers(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"

    def test_process_time_header(self, client):
        response = client.get("/health")

        assert float(response.headers["X-Process-Time"]) >= 0

    def test_oversized_body_rejected(self, auth_client, fake_llm):
        payload = b'{"message": "' + b"x" * (1024 * 1024 + 1) + b'"}'

        response = auth_client.post(
            "/api/llm/chat",
            content=payload,
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 413
        assert response.json() == {"error": "Request too large"}
        assert fake_llm.requests == []

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}
