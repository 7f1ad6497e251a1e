import mimetypes
from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Path, Request, Response, status
from fastapi.responses import RedirectResponse

from kelder.api.elevator import signed_tenant_query
from kelder.config import get_settings
from kelder.connections import blobs
from kelder.models import CreateBlob, DirectUpload, DirectUploadResponse
from kelder.sharding import split_key
from kelder.tenants import TenantContext

app_blobs = APIRouter(prefix="", tags=["blobs"])


async def current_tenant() -> TenantContext:
    """The tenant this request runs in, as established by the tenant elevator"""
    return blobs().tenants.current()


@app_blobs.post("/direct_uploads", status_code=status.HTTP_201_CREATED)
async def create_direct_upload(
    body: CreateBlob, tenant: TenantContext = Depends(current_tenant)
) -> DirectUploadResponse:
    """
    Register a new blob in the current tenant. This is a two step process.

    - First you call this endpoint with the name, size and checksum of the file.
    - You then PUT the file contents to the returned direct upload URL.

    To create the blob in a tenant other than the default, add the signed tenant name to the query string.
    """
    service = blobs()
    blob = service.create_blob(tenant, body.filename, body.byte_size, body.checksum, body.content_type)
    signed_id = service.signed_id(tenant, blob)
    headers = {"Content-MD5": blob.checksum}
    if blob.content_type:
        headers["Content-Type"] = blob.content_type
    return DirectUploadResponse(
        **blob.model_dump(include={"id", "key", "filename", "content_type", "byte_size", "checksum"}),
        signed_id=signed_id,
        direct_upload=DirectUpload(url=f"{get_settings().host}/blobs/{signed_id}", headers=headers),
    )


@app_blobs.put("/blobs/{signed_id}", status_code=status.HTTP_204_NO_CONTENT)
async def upload_blob(
    signed_id: Annotated[str, Path(description="Signed id of the blob, as returned by the direct upload")],
    request: Request,
):
    """Upload the contents of a registered blob. The size and checksum must match the registration."""
    service = blobs()
    tenant, blob = service.find_signed(signed_id)
    await service.upload(tenant, blob, await request.body())


@app_blobs.get("/blobs/{signed_id}/{filename}")
async def blob_redirect(
    signed_id: Annotated[str, Path(description="Signed id of the blob")],
    filename: Annotated[str, Path(description="Name of the file, only used to give the URL a nice name")],
):
    """
    Redirect to a short lived URL serving the contents of the blob.

    The signed id identifies the tenant of the blob, so this URL does not need a signed tenant name.
    """
    service = blobs()
    tenant, blob = service.find_signed(signed_id)
    if not blob.uploaded:
        raise HTTPException(status_code=404, detail=f"Blob {blob.id} has not been uploaded yet")
    key_token = service.references.sign_key(blob.key)
    return RedirectResponse(
        url=f"/disk/{key_token}/{quote(blob.filename)}?{signed_tenant_query(tenant.name)}",
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )


@app_blobs.get("/disk/{key_token}/{filename}")
async def serve_blob(
    key_token: Annotated[str, Path(description="Signed storage key")],
    filename: str,
    tenant: TenantContext = Depends(current_tenant),
) -> Response:
    """Serve the contents of a stored object. The object has to belong to the current tenant."""
    service = blobs()
    key = service.references.verify_key(key_token)
    slug, _ = split_key(key)
    if slug != tenant.slug:
        raise HTTPException(status_code=404, detail="Object not found")
    try:
        data = await service.storage.download(key)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Object not found")
    media_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)
