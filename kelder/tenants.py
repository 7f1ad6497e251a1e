"""
Tenant partitions and the ambient tenant context

A tenant is an isolated data partition sharing the storage backend with all other tenants.
The active tenant is kept in a ContextVar, so every asyncio task and every worker thread
sees its own value and a switch can never leak into a concurrently handled request.
"""

import logging
import re
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator

from kelder.errors import TenantSwitchFailure

logger = logging.getLogger("kelder.tenants")

TENANT_DELIMITER = "_"
TENANT_PATTERN = re.compile(r"^[a-z0-9]+(_[a-z0-9]+)*$")
SLUG_PATTERN = re.compile(r"^[a-z0-9]+$")


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant for the current unit of work."""

    name: str
    slug: str


def tenant_slug(tenant: str) -> str:
    """
    Reduce a tenant identifier to the short slug used as key and path prefix,
    e.g. "test_tenant_kelder_tenant123" -> "tenant123"
    """
    if not TENANT_PATTERN.match(tenant):
        raise ValueError(f"Invalid tenant identifier {tenant!r}, it should match {TENANT_PATTERN.pattern}")
    return tenant.split(TENANT_DELIMITER)[-1]


_current_tenant: ContextVar[TenantContext | None] = ContextVar("kelder_current_tenant", default=None)


class Tenants:
    """
    Registry of known tenants, with the scoped switch into a tenant context.

    The default tenant always exists and is active whenever nothing has been switched.
    """

    def __init__(self, default: str = "public"):
        self.default = TenantContext(default, tenant_slug(default))
        self._names: set[str] = {default}
        self._lock = threading.Lock()

    def create(self, name: str) -> TenantContext:
        context = TenantContext(name, tenant_slug(name))
        with self._lock:
            if name in self._names:
                raise ValueError(f"Tenant {name} already exists")
            # The slug is the storage prefix of the tenant, two tenants cannot share it
            if any(tenant_slug(other) == context.slug for other in self._names):
                raise ValueError(f"Another tenant already uses the slug {context.slug!r}")
            self._names.add(name)
        logger.info(f"Created tenant {name}")
        return context

    def drop(self, name: str):
        if name == self.default.name:
            raise ValueError("Cannot drop the default tenant")
        with self._lock:
            if name not in self._names:
                raise TenantSwitchFailure(f"Tenant {name} does not exist")
            self._names.remove(name)
        logger.info(f"Dropped tenant {name}")

    def exists(self, name: str) -> bool:
        return name in self._names

    def names(self) -> list[str]:
        return sorted(self._names)

    def get(self, name: str) -> TenantContext:
        if not self.exists(name):
            raise TenantSwitchFailure(f"Tenant {name!r} does not exist")
        return TenantContext(name, tenant_slug(name))

    def current(self) -> TenantContext:
        return _current_tenant.get() or self.default

    @contextmanager
    def switch(self, name: str) -> Iterator[TenantContext]:
        """
        Make the given tenant the current tenant for the duration of the with block.
        The previous tenant is restored on exit, also when the block raises.
        """
        context = self.get(name)
        token = _current_tenant.set(context)
        logger.debug(f"Switched into tenant {name}")
        try:
            yield context
        finally:
            _current_tenant.reset(token)
