#!/usr/bin/env python3
"""
TENANT CONFIG DEMO: Per-Tenant Settings With Hot-Reload
=======================================================

Serves each tenant's configuration from examples/configs/<tenant>/config.yaml.

Usage:
    cd examples
    uvicorn tenant_demo:app --port 8080

Then test:
    curl http://localhost:8080/settings
    curl http://localhost:8080/settings -H "X-Tenant-ID: tenant1"
    curl http://localhost:8080/settings -H "X-Tenant-ID: ../../etc"
    curl http://localhost:8080/stats

Edit configs/tenant1/config.yaml while the server runs and repeat the
tenant1 request: the new values show up without a restart.
"""

import logging
import os
import sys

# Add src to Python path so we can import tenancy
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from fastapi import Depends, FastAPI
from tenancy import (
    ConfigSnapshot,
    TenantConfig,
    TenantConfigCache,
    TenantConfigPlugin,
    get_tenant_cache,
    get_tenant_config,
    get_tenant_id,
)

logging.basicConfig(level=logging.INFO)

CONFIG_DIR = os.path.join(os.path.dirname(__file__), "configs")

plugin = TenantConfigPlugin(TenantConfig(config_directory=CONFIG_DIR))
app = FastAPI(title="Tenant config demo")
plugin.install(app)


@app.get("/settings")
async def settings(
    tenant_id: str = Depends(get_tenant_id),
    config: ConfigSnapshot = Depends(get_tenant_config),
):
    return {
        "tenant_id": tenant_id,
        "source": config.source,
        "login_lifespan": config.get("selfservice.flows.login.lifespan"),
        "log_level": config.get("log.level"),
    }


@app.get("/stats")
async def stats(cache: TenantConfigCache = Depends(get_tenant_cache)):
    return cache.stats()


@app.get("/health")
async def health():
    return {"status": "healthy"}
