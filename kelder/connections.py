import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncGenerator

from aiobotocore.config import AioConfig
from aiobotocore.session import get_session
from types_aiobotocore_s3.client import S3Client

from kelder.blobs import BlobService
from kelder.config import StorageOptions, get_settings
from kelder.sharding import PathSharder
from kelder.signing import SignedReference, Signer
from kelder.storage.base import StorageService
from kelder.storage.disk import DiskService
from kelder.tenants import Tenants


class KelderConnections:
    blobs: BlobService | None
    s3_client: S3Client | None
    s3_context_stack: AsyncExitStack | None

    def __init__(
        self,
        blobs: BlobService | None = None,
        s3_client: S3Client | None = None,
        s3_context_stack: AsyncExitStack | None = None,
    ):
        self.blobs = blobs
        self.s3_client = s3_client
        self.s3_context_stack = s3_context_stack


CONNECTIONS = KelderConnections()


@asynccontextmanager
async def kelder_connections() -> AsyncGenerator[BlobService, None]:
    """
    The main context manager to start and stop the services used by kelder.
    Always use this once (and only once):
        - For running the server: in the FastAPI lifespan
        - For tests: in the setup fixture in the tests
        - For CLI commands: within the CLI command
    """
    try:
        storage = await _start_storage()
        CONNECTIONS.blobs = build_blob_service(storage)
        yield CONNECTIONS.blobs
    finally:
        CONNECTIONS.blobs = None
        await _close_s3()


def blobs() -> BlobService:
    """
    Use this function to access the blob service.
    """
    if CONNECTIONS.blobs is None:
        raise ConnectionError("Blob service not initialized")
    return CONNECTIONS.blobs


def s3_enabled() -> bool:
    settings = get_settings()
    return all([settings.s3_host, settings.s3_access_key, settings.s3_secret_key])


def build_blob_service(storage: StorageService) -> BlobService:
    settings = get_settings()
    references = SignedReference(
        Signer(settings.secret_key),
        days_valid=settings.token_days_valid,
        key_hours_valid=settings.key_token_hours_valid,
    )
    tenants = Tenants(settings.default_tenant)
    for name in settings.tenants:
        tenants.create(name)
    return BlobService(tenants=tenants, storage=storage, references=references)


async def _start_storage() -> StorageService:
    settings = get_settings()
    sharder = PathSharder(depth=settings.shard_depth, width=settings.shard_width)
    if settings.storage == StorageOptions.s3:
        from kelder.storage.s3 import S3Service

        client = await _start_s3()
        logging.debug(f"Storing blobs in bucket {settings.s3_bucket} at {settings.s3_host}")
        return S3Service(client, settings.s3_bucket, sharder)

    logging.debug(f"Storing blobs on disk at {settings.storage_root}")
    return DiskService(settings.storage_root, sharder)


async def _start_s3() -> S3Client:
    settings = get_settings()

    if settings.s3_host is None:
        raise ValueError("s3_host not specified")
    if settings.s3_access_key is None or settings.s3_secret_key is None:
        raise ValueError("s3_access_key or s3_secret_key not specified")

    session = get_session()
    client = session.create_client(
        service_name="s3",
        endpoint_url=settings.s3_host,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
        config=AioConfig(signature_version="s3v4"),
    )

    CONNECTIONS.s3_context_stack = AsyncExitStack()
    CONNECTIONS.s3_client = await CONNECTIONS.s3_context_stack.enter_async_context(client)
    return CONNECTIONS.s3_client


async def _close_s3():
    if CONNECTIONS.s3_context_stack is not None:
        await CONNECTIONS.s3_context_stack.aclose()
        CONNECTIONS.s3_client = None
        CONNECTIONS.s3_context_stack = None
