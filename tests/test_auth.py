"""Tests for API authentication."""


class TestAuthentication:
    """Tests for HTTP Basic authentication."""

    def test_valid_credentials_accepted(self, client, auth):
        """Test that valid credentials grant access."""
        response = client.get("/api/dashboard/summary", auth=auth)
        assert response.status_code == 200

    def test_invalid_username_rejected(self, client):
        """Test that invalid username is rejected."""
        response = client.get("/api/dashboard/summary", auth=("wronguser", "kgdoamor2025"))
        assert response.status_code == 401

    def test_invalid_password_rejected(self, client, invalid_auth_headers):
        """Test that invalid password is rejected."""
        response = client.get("/api/dashboard/summary", headers=invalid_auth_headers)
        assert response.status_code == 401

    def test_empty_credentials_rejected(self, client):
        """Test that empty credentials are rejected."""
        response = client.get("/api/dashboard/summary")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Basic"

    def test_malformed_auth_header_rejected(self, client):
        """Test that a bearer token is not accepted."""
        response = client.get(
            "/api/dashboard/summary",
            headers={"Authorization": "Bearer invalid-token"}
        )
        assert response.status_code == 401

    def test_case_sensitive_password(self, client):
        """Test that password is case-sensitive."""
        response = client.get("/api/dashboard/summary", auth=("admin", "KGDOAMOR2025"))
        assert response.status_code == 401

    def test_auth_headers_fixture(self, client, auth_headers):
        response = client.get("/api/networks", headers=auth_headers)
        assert response.status_code == 200

    def test_health_endpoint_unauthenticated(self, client):
        """Test that /health stays open for liveness probes."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "X-Process-Time" in response.headers

    def test_multiple_endpoints_require_auth(self, client):
        """Test that every API area requires authentication."""
        endpoints = [
            "/api/networks",
            "/api/cells",
            "/api/categories",
            "/api/products",
            "/api/receipts",
            "/api/withdrawals",
            "/api/stock",
            "/api/dashboard/rankings",
        ]

        for endpoint in endpoints:
            response = client.get(endpoint)
            assert response.status_code == 401, f"Endpoint {endpoint} should require auth"
