"""Test main FastAPI application configuration."""
import pytest
from fastapi.testclient import TestClient

from studio.core.config import settings
from studio.main import app


class TestMainApp:
    """Test main FastAPI application configuration."""

    @pytest.fixture
    def client(self):
        """Create test client."""
        return TestClient(app)

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["version"] == settings.VERSION

    def test_health_reports_database(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"

    def test_no_duplicate_api_prefix(self, client):
        """Ensure routes don't have duplicate /api/v1/api/v1."""
        response = client.get(f"{settings.API_V1_STR}/openapi.json")
        assert response.status_code == 200
        paths = response.json()["paths"]

        assert f"{settings.API_V1_STR}/books/" in paths
        assert f"{settings.API_V1_STR}/studio/state" in paths
        for path in paths:
            assert path.count("/api/v1") <= 1, f"Path {path} contains duplicate /api/v1"

    def test_protected_routes_require_token(self, client):
        response = client.get(f"{settings.API_V1_STR}/books/")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

        response = client.get(
            f"{settings.API_V1_STR}/books/",
            headers={"Authorization": "Bearer undefined"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token format"

        response = client.get(
            f"{settings.API_V1_STR}/books/",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401


def test_cors_headers_for_localhost():
    """Test that CORS headers work for localhost development."""
    client = TestClient(app)

    response = client.options(
        "/health",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert response.headers["access-control-allow-credentials"] == "true"


def test_cors_rejects_unknown_origin():
    client = TestClient(app)

    response = client.get("/health", headers={"Origin": "https://evil.example.com"})

    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('["http://a.test", "http://b.test"]', ["http://a.test", "http://b.test"]),
        ("[http://a.test]", ["http://a.test"]),
        ("['http://a.test', 'http://b.test']", ["http://a.test", "http://b.test"]),
        ("http://a.test, http://b.test", ["http://a.test", "http://b.test"]),
        ("http://a.test", ["http://a.test"]),
    ],
)
def test_cors_origins_parsing(monkeypatch, raw, expected):
    monkeypatch.setenv("BACKEND_CORS_ORIGINS", raw)
    assert settings.BACKEND_CORS_ORIGINS == expected


def test_cors_origins_default(monkeypatch):
    monkeypatch.delenv("BACKEND_CORS_ORIGINS", raising=False)
    assert "http://localhost:3000" in settings.BACKEND_CORS_ORIGINS
