from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, Field

TenantId = Annotated[str, Field(pattern=r"^[a-z0-9]+(_[a-z0-9]+)*$", title="Tenant ID")]


######################## BLOBS #########################


class Blob(BaseModel):
    """Metadata of a stored object. The bytes live in the storage service under the blob key."""

    id: int = Field(description="Identifier of the blob, unique within its tenant")
    key: str = Field(description="Storage key, prefixed with the tenant slug")
    filename: str = Field(description="Original name of the uploaded file")
    content_type: str | None = Field(default=None, description="Mime type of the file")
    byte_size: int = Field(ge=0, description="Size of the file in bytes")
    checksum: str = Field(description="Base64 encoded MD5 digest of the file contents")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    uploaded: bool = Field(default=False, description="Whether the bytes have been uploaded to the storage service")


class CreateBlob(BaseModel):
    filename: str = Field(min_length=1, description="Name of the file that will be uploaded")
    byte_size: int = Field(ge=0, description="Size of the file in bytes")
    checksum: str = Field(description="Base64 encoded MD5 digest of the file contents")
    content_type: str | None = Field(default=None, description="Mime type of the file")


class DirectUpload(BaseModel):
    url: str = Field(description="The URL to PUT the file contents to")
    headers: dict[str, str] = Field(description="Headers to include in the PUT request")


class DirectUploadResponse(BaseModel):
    id: int
    key: str
    filename: str
    content_type: str | None
    byte_size: int
    checksum: str
    signed_id: str = Field(description="Signed reference to this blob, valid across tenants")
    direct_upload: DirectUpload


class InfoResponse(BaseModel):
    tenant: TenantId = Field(description="The tenant this request is handled in")
    storage: str = Field(description="The configured storage backend")
    api_version: str = Field(description="The version of the Kelder API")
