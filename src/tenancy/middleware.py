"""Tenant middleware for FastAPI/Starlette.

Provides TenantMiddleware that extracts the tenant ID from each
request and exposes it through the tenant context for the duration
of the request.
"""

import fnmatch
import logging
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from tenancy.config import TenantConfig
from tenancy.context import reset_current_tenant_id, set_current_tenant_id
from tenancy.extractor import TenantExtractor

logger = logging.getLogger(__name__)


class TenantMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware that sets the tenant context.

    Middleware behavior:
    1. Check if path is excluded
    2. Extract and sanitize the tenant ID from the tenant header
    3. Set tenant context via contextvars and request.state.tenant_id
    4. Process request within tenant context
    5. Echo the tenant ID in the response header and clear the context

    Requests without a usable header run as the default tenant.

    Example:
        >>> from fastapi import FastAPI
        >>> from tenancy import TenantConfig, TenantMiddleware
        >>>
        >>> app = FastAPI()
        >>> app.add_middleware(TenantMiddleware, config=TenantConfig())
    """

    def __init__(self, app, config: Optional[TenantConfig] = None):
        """Initialize tenant middleware.

        Args:
            app: FastAPI/Starlette application
            config: Tenant configuration (default: TenantConfig())
        """
        super().__init__(app)
        self.config = config or TenantConfig()
        self._extractor = TenantExtractor(self.config)

    def _is_excluded_path(self, path: str) -> bool:
        for pattern in self.config.exclude_paths:
            if fnmatch.fnmatch(path, pattern):
                return True
        return False

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with tenant context."""
        if not self.config.enabled:
            return await call_next(request)

        path = request.url.path
        if self._is_excluded_path(path):
            return await call_next(request)

        tenant_id = self._extractor.extract(request)
        token = set_current_tenant_id(tenant_id)
        request.state.tenant_id = tenant_id

        logger.debug("Tenant context set: %s for %s", tenant_id, path)

        try:
            response = await call_next(request)
            response.headers[self.config.tenant_id_header] = tenant_id
            return response
        finally:
            reset_current_tenant_id(token)
