"""
Unit tests for the Catalog service host.
"""

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from shared.errors import NotFoundError
from service_catalog.app.main import CatalogService, create_app
from service_catalog.app.catalog import VehicleCatalog


class TestCatalogService:
    """Test cases for CatalogService."""

    @pytest.fixture
    def catalog_service(self):
        """Create CatalogService instance."""
        return CatalogService(list_cache_ttl=120, cache_single_flight=True)

    @pytest.fixture
    def client(self, catalog_service):
        """Create test client."""
        return TestClient(catalog_service.app)

    def test_service_initialization(self, catalog_service):
        """Test that configuration flows into the coordinator."""
        assert catalog_service.service_name == "catalog"
        assert catalog_service.port == 8020
        assert isinstance(catalog_service.catalog, VehicleCatalog)
        assert catalog_service.catalog.cache is catalog_service.cache
        assert catalog_service.catalog.repository is catalog_service.persistence
        assert catalog_service.catalog.list_ttl == 120
        assert catalog_service.catalog.detail_ttl == 600
        assert catalog_service.catalog.single_flight is True

    def test_root_endpoint(self, client):
        """Test root endpoint."""
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "catalog"
        assert data["cache"]["namespace"] == "catalog:vehicles"
        assert data["cache"]["list_ttl_seconds"] == 120

    def test_health_reports_unstarted_stores(self, client):
        """Test that unreachable stores degrade health."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["dependencies"] == {"redis": "error", "postgres": "error"}

    @patch('service_catalog.app.main.CatalogService._check_dependencies')
    def test_health_with_dependencies(self, mock_check_deps, client):
        """Test health endpoint with dependency checks."""
        mock_check_deps.return_value = {"redis": "ok", "postgres": "ok"}

        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["dependencies"]["redis"] == "ok"

    def test_metrics_endpoint(self, client):
        """Test Prometheus exposition."""
        client.get("/")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "http_requests_total" in response.text

    def test_catalog_errors_map_to_status(self, catalog_service, client):
        """Test that CatalogException subclasses map to their HTTP status."""
        @catalog_service.app.get("/_probe")
        async def probe():
            raise NotFoundError("Vehicle not found", details={"id": "abc"})

        response = client.get("/_probe", headers={"x-request-id": "req-1"})
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"
        assert response.json()["details"] == {"id": "abc"}

    def test_lifespan_starts_and_stops_stores(self, catalog_service):
        """Test that the app lifespan acquires and releases both stores."""
        with patch.object(catalog_service.persistence, "start", new_callable=AsyncMock) as p_start, \
             patch.object(catalog_service.persistence, "stop", new_callable=AsyncMock) as p_stop, \
             patch.object(catalog_service.cache, "start", new_callable=AsyncMock) as c_start, \
             patch.object(catalog_service.cache, "stop", new_callable=AsyncMock) as c_stop:
            with TestClient(catalog_service.app):
                p_start.assert_awaited_once()
                c_start.assert_awaited_once()

        p_stop.assert_awaited_once()
        c_stop.assert_awaited_once()

    def test_create_app(self):
        """Test application factory."""
        app = create_app()
        assert app.title == "Catalog Service"
