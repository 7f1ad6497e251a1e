"""
Blobs: metadata records per tenant, with the bytes in a storage service.

Every lookup takes the tenant it should run in. Records of different tenants are kept in
separate partitions, so a lookup in the wrong tenant cannot find another tenant's blob.
"""

import base64
import hashlib
import logging
import threading

from kelder.errors import TenantSwitchFailure
from kelder.keys import KeyGenerator
from kelder.models import Blob
from kelder.signing import SignedReference
from kelder.storage.base import StorageService
from kelder.tenants import TenantContext, Tenants

logger = logging.getLogger("kelder.blobs")


def compute_checksum(data: bytes) -> str:
    """Base64 encoded MD5 digest, as sent by direct upload clients"""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


class BlobRecords:
    """In-memory blob metadata, partitioned by tenant"""

    def __init__(self):
        self._partitions: dict[str, dict[int, Blob]] = {}
        self._keys: set[str] = set()
        self._lock = threading.Lock()

    def insert(self, tenant: TenantContext, **fields) -> Blob:
        with self._lock:
            partition = self._partitions.setdefault(tenant.name, {})
            blob = Blob(id=max(partition, default=0) + 1, **fields)
            partition[blob.id] = blob
            self._keys.add(blob.key)
        return blob

    def get(self, tenant: TenantContext, blob_id: int) -> Blob:
        try:
            return self._partitions.get(tenant.name, {})[blob_id]
        except KeyError:
            raise KeyError(f"Blob {blob_id} does not exist in tenant {tenant.name}")

    def update(self, tenant: TenantContext, blob: Blob) -> None:
        with self._lock:
            self._partitions.setdefault(tenant.name, {})[blob.id] = blob

    def key_exists(self, key: str) -> bool:
        return key in self._keys

    def drop(self, tenant: TenantContext) -> list[Blob]:
        with self._lock:
            blobs = list(self._partitions.pop(tenant.name, {}).values())
            self._keys.difference_update(b.key for b in blobs)
        return blobs


class BlobService:
    def __init__(
        self,
        tenants: Tenants,
        storage: StorageService,
        references: SignedReference,
        records: BlobRecords | None = None,
        keys: KeyGenerator | None = None,
    ):
        self.tenants = tenants
        self.storage = storage
        self.references = references
        self.records = records or BlobRecords()
        self.keys = keys or KeyGenerator(exists=self.records.key_exists)

    def create_blob(
        self, tenant: TenantContext, filename: str, byte_size: int, checksum: str, content_type: str | None = None
    ) -> Blob:
        """Register a new blob in this tenant, the contents are uploaded separately"""
        key = self.keys.generate_key(tenant.name)
        blob = self.records.insert(
            tenant, key=key, filename=filename, byte_size=byte_size, checksum=checksum, content_type=content_type
        )
        logger.info(f"Created blob {blob.id} with key {key} in tenant {tenant.name}")
        return blob

    async def create_after_upload(
        self, tenant: TenantContext, filename: str, data: bytes, content_type: str | None = None
    ) -> Blob:
        blob = self.create_blob(tenant, filename, len(data), compute_checksum(data), content_type)
        return await self.upload(tenant, blob, data)

    async def upload(self, tenant: TenantContext, blob: Blob, data: bytes) -> Blob:
        if len(data) != blob.byte_size:
            raise ValueError(f"Expected {blob.byte_size} bytes for blob {blob.id}, got {len(data)}")
        if compute_checksum(data) != blob.checksum:
            raise ValueError(f"Checksum mismatch for blob {blob.id}")
        await self.storage.upload(blob.key, data)
        blob = blob.model_copy(update=dict(uploaded=True))
        self.records.update(tenant, blob)
        return blob

    async def download(self, blob: Blob) -> bytes:
        return await self.storage.download(blob.key)

    def find(self, tenant: TenantContext, blob_id: int) -> Blob:
        return self.records.get(tenant, blob_id)

    def signed_id(self, tenant: TenantContext, blob: Blob) -> str:
        return self.references.sign_blob_id(tenant.name, blob.id)

    def find_signed(self, signed_id: str) -> tuple[TenantContext, Blob]:
        """
        Find a blob by its signed id. The lookup runs inside the tenant that signed the id,
        whatever tenant the caller is currently in.
        """
        tenant_name, blob_id = self.references.verify_blob_id(signed_id)
        with self.tenants.switch(tenant_name) as tenant:
            return tenant, self.find(tenant, blob_id)

    async def purge_tenant(self, tenant: TenantContext) -> int:
        """Remove all blobs of a tenant. Its objects share one prefix, so this is a single prefix delete"""
        if not self.tenants.exists(tenant.name):
            raise TenantSwitchFailure(f"Tenant {tenant.name!r} does not exist")
        blobs = self.records.drop(tenant)
        await self.storage.delete_prefix(self.storage.sharder.tenant_prefix(tenant.slug))
        logger.info(f"Purged {len(blobs)} blobs of tenant {tenant.name}")
        return len(blobs)
