"""
Tenant elevation for the generic blob endpoints.

The blob endpoints are mounted at fixed, tenant agnostic routes. The tenant a request should run
in is "sidechannelled" as a signed tenant name in a query string parameter, which URL builders
must add when generating upload or download URLs (otherwise the default tenant is used).

The name is signed, because otherwise anyone could upload to or read from any tenant.

This is ASGI middleware rather than a route dependency: it has to run before the route
resolves anything from the request, since those lookups already hit the tenant partitions.
"""

import logging
from contextlib import ExitStack
from urllib.parse import urlencode

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from kelder.config import get_settings
from kelder.connections import blobs
from kelder.errors import InvalidSignature, TenantSwitchFailure

logger = logging.getLogger("kelder.elevator")


def signed_tenant_query(tenant: str) -> str:
    """Query string that elevates a request into this tenant, e.g. for use in generated URLs"""
    token = blobs().references.sign_tenant(tenant)
    return urlencode({get_settings().tenant_param: token})


class TenantElevator:
    def __init__(self, app: ASGIApp, param: str | None = None):
        self.app = app
        self.param = param

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        param = self.param or get_settings().tenant_param
        signed_tenant_name = Request(scope).query_params.get(param)
        if signed_tenant_name is None:
            await self.app(scope, receive, send)
            return

        service = blobs()
        try:
            tenant = service.references.verify_tenant(signed_tenant_name)
        except InvalidSignature as e:
            logger.warning(f"Rejected signed tenant name on {scope.get('path')}: {e}")
            response = JSONResponse(status_code=403, content={"message": f"Invalid signed tenant name: {e}"})
            await response(scope, receive, send)
            return

        with ExitStack() as stack:
            try:
                stack.enter_context(service.tenants.switch(tenant))
            except TenantSwitchFailure:
                logger.warning(f"Signed tenant name for unknown tenant {tenant}")
                response = JSONResponse(status_code=404, content={"message": f"Tenant {tenant} does not exist"})
                await response(scope, receive, send)
                return
            await self.app(scope, receive, send)
