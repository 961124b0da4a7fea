"""Tenant extractor - derives a tenant ID from HTTP requests.

The tenant ID is used as a directory name when locating tenant
configuration files, so every value leaving this module is safe to
use as a single path segment.
"""

import logging
from typing import Optional

from starlette.requests import HTTPConnection
from tenancy.config import TenantConfig

logger = logging.getLogger(__name__)

DEFAULT_TENANT_ID = "default"

# Removing a separator can join dots into a new "..", e.g. "./.",
# so stripping repeats until nothing changes.
_FORBIDDEN_SEQUENCES = ("..", "/", "\\")


def sanitize_tenant_id(raw: Optional[str], default: str = DEFAULT_TENANT_ID) -> str:
    """Normalize a raw tenant ID.

    Malformed input never raises; it degrades to the default tenant.

    Args:
        raw: Raw value, e.g. a header value (may be None or adversarial)
        default: Tenant ID returned for empty input

    Returns:
        Sanitized tenant ID with no parent-directory or separator sequences

    Example:
        >>> sanitize_tenant_id("  tenant1 ")
        'tenant1'
        >>> sanitize_tenant_id("../../etc")
        'etc'
        >>> sanitize_tenant_id("   ")
        'default'
    """
    if raw is None:
        return default

    tenant_id = raw.strip()
    if not tenant_id:
        return default

    previous = None
    while tenant_id != previous:
        previous = tenant_id
        for sequence in _FORBIDDEN_SEQUENCES:
            tenant_id = tenant_id.replace(sequence, "")

    if not tenant_id:
        return default

    return tenant_id


class TenantExtractor:
    """Extracts the tenant ID from a request header.

    Example:
        >>> extractor = TenantExtractor(TenantConfig(tenant_id_header="X-Org-ID"))
        >>> tenant_id = extractor.extract(request)
    """

    def __init__(self, config: Optional[TenantConfig] = None):
        self.config = config or TenantConfig()

    def extract(self, request: HTTPConnection) -> str:
        """Extract and sanitize the tenant ID carried by ``request``."""
        raw = request.headers.get(self.config.tenant_id_header)
        tenant_id = sanitize_tenant_id(raw, default=self.config.default_tenant_id)
        if raw and tenant_id != raw.strip():
            logger.debug("Sanitized tenant header %r to '%s'", raw, tenant_id)
        return tenant_id
