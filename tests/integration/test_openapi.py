"""
Integration tests for OpenAPI documentation.

Verifies OpenAPI schema is correctly generated for all endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client for the application."""
    return TestClient(app)


@pytest.fixture
def schema(client: TestClient) -> dict:
    response = client.get("/openapi.json")
    assert response.status_code == 200
    return response.json()


class TestOpenAPISchema:
    """Tests for OpenAPI schema generation."""

    def test_openapi_schema_accessible(self, schema: dict) -> None:
        """OpenAPI schema is accessible at /openapi.json."""
        assert "openapi" in schema
        assert "info" in schema
        assert "paths" in schema

    def test_openapi_title_and_description(self, schema: dict) -> None:
        """OpenAPI schema has correct title and description."""
        assert schema["info"]["title"] == "manager-registration"
        assert "verification" in schema["info"]["description"].lower()
        assert schema["info"]["version"] == "0.1.0"

    def test_register_endpoint_in_schema(self, schema: dict) -> None:
        """POST /v1/auth/register endpoint is documented in schema."""
        register = schema["paths"]["/v1/auth/register"]
        assert "post" in register
        assert register["post"]["summary"] == "Register a new user"
        assert {"200", "400", "500"} <= set(register["post"]["responses"])

    def test_verify_endpoint_in_schema(self, schema: dict) -> None:
        """POST /v1/auth/verify endpoint is documented in schema."""
        verify = schema["paths"]["/v1/auth/verify"]
        assert "post" in verify
        assert verify["post"]["summary"] == "Verify email and create account"
        assert {"200", "400", "404", "500"} <= set(verify["post"]["responses"])

    def test_health_endpoint_in_schema(self, schema: dict) -> None:
        assert "get" in schema["paths"]["/health"]

    def test_register_request_schema(self, schema: dict) -> None:
        """RegisterRequest has email, password and confirmation fields."""
        props = schema["components"]["schemas"]["RegisterRequest"]["properties"]
        assert set(props) == {"email", "password", "password_confirmation"}

    def test_register_response_schema(self, schema: dict) -> None:
        props = schema["components"]["schemas"]["RegisterResponse"]["properties"]
        assert set(props) == {"message", "expires_at"}

    def test_verify_schemas(self, schema: dict) -> None:
        components = schema["components"]["schemas"]
        assert set(components["VerifyRequest"]["properties"]) == {"token"}
        assert set(components["VerifyResponse"]["properties"]) == {
            "message",
            "auth_token",
            "user",
        }
        assert "password_hash" not in components["UserResponse"]["properties"]

    def test_error_response_schema(self, schema: dict) -> None:
        props = schema["components"]["schemas"]["ErrorResponse"]["properties"]
        assert set(props) == {"code", "message", "details", "request_id"}

    def test_endpoints_tagged_with_v1(self, schema: dict) -> None:
        """Both endpoints are tagged with v1."""
        assert "v1" in [t["name"] for t in schema.get("tags", [])]
        assert "v1" in schema["paths"]["/v1/auth/register"]["post"]["tags"]
        assert "v1" in schema["paths"]["/v1/auth/verify"]["post"]["tags"]


class TestSwaggerUI:
    """Tests for Swagger UI availability."""

    def test_docs_endpoint_accessible(self, client: TestClient) -> None:
        """Swagger UI is accessible at /docs."""
        response = client.get("/docs")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "swagger" in response.text.lower()

    def test_redoc_endpoint_accessible(self, client: TestClient) -> None:
        """ReDoc is accessible at /redoc."""
        response = client.get("/redoc")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "redoc" in response.text.lower()
