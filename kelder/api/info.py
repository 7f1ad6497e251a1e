"""API Endpoints for server information."""

from importlib.metadata import PackageNotFoundError, version

from fastapi import APIRouter, Depends

from kelder.api.blobs import current_tenant
from kelder.config import get_settings
from kelder.models import InfoResponse
from kelder.tenants import TenantContext

app_info = APIRouter(tags=["informational"])


def api_version() -> str:
    try:
        return version("kelder")
    except PackageNotFoundError:
        return "unknown"


@app_info.get("/info")
async def get_info(tenant: TenantContext = Depends(current_tenant)) -> InfoResponse:
    """Get the tenant this request is handled in and the configured storage backend."""
    return InfoResponse(tenant=tenant.name, storage=get_settings().storage.value, api_version=api_version())
