"""Tenant context propagation using contextvars.

Carries the resolved tenant ID from the point where it is extracted
(usually TenantMiddleware) to the point where configuration is
requested. The value lives under a single well-known key and is
thread-safe and async-safe via Python's contextvars.
"""

import logging
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar, Token
from typing import Optional

from tenancy.exceptions import TenantContextError
from tenancy.extractor import DEFAULT_TENANT_ID

logger = logging.getLogger(__name__)

TENANT_ID_KEY = "tenant_id"

_current_tenant_id: ContextVar[Optional[str]] = ContextVar(TENANT_ID_KEY, default=None)


def get_current_tenant_id(default: str = DEFAULT_TENANT_ID) -> str:
    """Get the current tenant ID from context.

    Args:
        default: Returned when no tenant ID is set

    Returns:
        Current tenant ID, or ``default`` if no context is set
    """
    tenant_id = _current_tenant_id.get()
    return tenant_id if tenant_id else default


def has_tenant_context() -> bool:
    """Whether a tenant ID has been set in the current context."""
    return _current_tenant_id.get() is not None


def set_current_tenant_id(tenant_id: str) -> Token:
    """Set the tenant ID for the current context.

    Args:
        tenant_id: Sanitized tenant ID

    Returns:
        Token to pass to reset_current_tenant_id()

    Raises:
        TenantContextError: If tenant_id is empty
    """
    if not tenant_id or not isinstance(tenant_id, str):
        raise TenantContextError("tenant_id must be a non-empty string")
    return _current_tenant_id.set(tenant_id)


def reset_current_tenant_id(token: Token) -> None:
    """Restore the tenant ID that was active before set_current_tenant_id()."""
    _current_tenant_id.reset(token)


@contextmanager
def tenant_scope(tenant_id: str):
    """Synchronous context manager for running code as a tenant.

    Example:
        >>> with tenant_scope("tenant1"):
        ...     config = tenant_config.provider()
    """
    previous = _current_tenant_id.get()
    token = set_current_tenant_id(tenant_id)
    logger.debug("Switched to tenant '%s' (previous: %s)", tenant_id, previous)
    try:
        yield tenant_id
    finally:
        _current_tenant_id.reset(token)


@asynccontextmanager
async def atenant_scope(tenant_id: str):
    """Asynchronous context manager for running code as a tenant.

    Same semantics as tenant_scope() but for async code.
    """
    previous = _current_tenant_id.get()
    token = set_current_tenant_id(tenant_id)
    logger.debug("Async switched to tenant '%s' (previous: %s)", tenant_id, previous)
    try:
        yield tenant_id
    finally:
        _current_tenant_id.reset(token)
