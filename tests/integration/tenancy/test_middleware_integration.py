"""Integration tests for tenant middleware and dependencies.

Tier 2 tests - NO MOCKING. Uses real FastAPI TestClient with real
middleware and real configuration files.
"""

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient
from tenancy.aware import TenantAwareConfig
from tenancy.cache import TenantConfigCache
from tenancy.config import TenantConfig
from tenancy.context import get_current_tenant_id
from tenancy.dependencies import get_tenant_config, get_tenant_id
from tenancy.loader import ConfigSnapshot, YamlConfigLoader
from tenancy.middleware import TenantMiddleware

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def cache(config_dir):
    loader = YamlConfigLoader()
    cache = TenantConfigCache(
        base_config=loader.load(config_dir / "default" / "config.yaml"),
        config_directory=config_dir,
        loader=loader,
        watch=False,
    )
    yield cache
    cache.shutdown()


@pytest.fixture
def app(cache):
    app = FastAPI()
    app.state.tenant_configs = cache
    app.add_middleware(
        TenantMiddleware,
        config=TenantConfig(exclude_paths=["/health"]),
    )
    aware = TenantAwareConfig(cache)

    @app.get("/health")
    async def health():
        return {"tenant_id": get_current_tenant_id(default="none")}

    @app.get("/api/tenant")
    async def tenant(request: Request, tenant_id: str = Depends(get_tenant_id)):
        return {
            "tenant_id": tenant_id,
            "context": get_current_tenant_id(),
            "state": request.state.tenant_id,
        }

    @app.get("/api/settings")
    async def settings(config: ConfigSnapshot = Depends(get_tenant_config)):
        return {
            "lifespan": config.get("selfservice.flows.login.lifespan"),
            "log_level": config.get("log.level"),
        }

    @app.get("/api/sync-settings")
    def sync_settings():
        # Sync endpoints run in a worker thread; the context follows them
        return {"lifespan": aware.get("selfservice.flows.login.lifespan")}

    return app


@pytest.fixture
def client(app):
    return TestClient(app)


# =============================================================================
# Tests: Tenant extraction
# =============================================================================


class TestTenantExtraction:
    """Integration tests for extracting the tenant header (NO MOCKING)."""

    def test_header_sets_context(self, client):
        response = client.get("/api/tenant", headers={"X-Tenant-ID": "tenant1"})
        assert response.status_code == 200
        assert response.json() == {
            "tenant_id": "tenant1",
            "context": "tenant1",
            "state": "tenant1",
        }

    def test_tenant_header_in_response(self, client):
        response = client.get("/api/tenant", headers={"X-Tenant-ID": "tenant1"})
        assert response.headers.get("X-Tenant-ID") == "tenant1"

    def test_missing_header_uses_default(self, client):
        response = client.get("/api/tenant")
        assert response.json()["tenant_id"] == "default"
        assert response.headers.get("X-Tenant-ID") == "default"

    def test_traversal_header_sanitized(self, client):
        response = client.get("/api/tenant", headers={"X-Tenant-ID": "../../etc"})
        assert response.json()["tenant_id"] == "etc"

    def test_excluded_path_has_no_context(self, client):
        response = client.get("/health", headers={"X-Tenant-ID": "tenant1"})
        assert response.json()["tenant_id"] == "none"
        assert "X-Tenant-ID" not in response.headers

    def test_disabled_middleware_passes_through(self, cache):
        app = FastAPI()
        app.add_middleware(TenantMiddleware, config=TenantConfig(enabled=False))

        @app.get("/api/tenant")
        async def tenant():
            return {"tenant_id": get_current_tenant_id(default="none")}

        response = TestClient(app).get(
            "/api/tenant", headers={"X-Tenant-ID": "tenant1"}
        )
        assert response.json()["tenant_id"] == "none"

    def test_context_cleared_between_requests(self, client):
        client.get("/api/tenant", headers={"X-Tenant-ID": "tenant1"})
        response = client.get("/api/tenant")
        assert response.json()["context"] == "default"


# =============================================================================
# Tests: Configuration resolution
# =============================================================================


class TestConfigResolution:
    """Integration tests for per-tenant configuration (NO MOCKING)."""

    def test_tenant1_gets_own_config(self, client):
        response = client.get("/api/settings", headers={"X-Tenant-ID": "tenant1"})
        assert response.json() == {"lifespan": "30m", "log_level": "info"}

    def test_default_gets_base_config(self, client):
        response = client.get("/api/settings")
        assert response.json() == {"lifespan": "10m", "log_level": "debug"}

    def test_unknown_tenant_falls_back(self, client, cache):
        for _ in range(3):
            response = client.get(
                "/api/settings", headers={"X-Tenant-ID": "nonexistent"}
            )
            assert response.status_code == 200
            assert response.json()["lifespan"] == "10m"
        assert "nonexistent" not in cache.stats()["loaded_tenant_ids"]

    def test_broken_tenant_file_falls_back(self, client, config_dir):
        (config_dir / "broken").mkdir()
        (config_dir / "broken" / "config.yaml").write_text("log: [unclosed\n")

        response = client.get("/api/settings", headers={"X-Tenant-ID": "broken"})
        assert response.status_code == 200
        assert response.json()["lifespan"] == "10m"

    def test_overlong_tenant_header_falls_back(self, client):
        response = client.get("/api/settings", headers={"X-Tenant-ID": "a" * 300})
        assert response.status_code == 200
        assert response.json()["lifespan"] == "10m"

    def test_sync_endpoint_sees_tenant(self, client):
        response = client.get("/api/sync-settings", headers={"X-Tenant-ID": "tenant1"})
        assert response.json()["lifespan"] == "30m"

    def test_missing_cache_returns_500(self):
        app = FastAPI()
        app.add_middleware(TenantMiddleware)

        @app.get("/api/settings")
        async def settings(config: ConfigSnapshot = Depends(get_tenant_config)):
            return config.as_dict()

        response = TestClient(app).get("/api/settings")
        assert response.status_code == 500
