import shutil

import pytest
from httpx import ASGITransport, AsyncClient

from kelder import api
from kelder.config import get_settings
from kelder.connections import CONNECTIONS, blobs, build_blob_service
from kelder.sharding import PathSharder
from kelder.storage.disk import DiskService

KELDER_TEST_TENANT = "test_tenant_kelder_tenant123"


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session", autouse=True)
def my_setup(tmp_path_factory):
    # Override the storage root and secret, and start the services without running the app lifespan
    settings = get_settings()
    settings.secret_key = "kelder unittest secret"
    settings.storage_root = tmp_path_factory.mktemp("storage")
    sharder = PathSharder(depth=settings.shard_depth, width=settings.shard_width)
    CONNECTIONS.blobs = build_blob_service(DiskService(settings.storage_root, sharder))
    yield
    CONNECTIONS.blobs = None


@pytest.fixture()
async def client():
    async with AsyncClient(transport=ASGITransport(app=api.app), base_url="http://test", follow_redirects=False) as client:
        yield client


@pytest.fixture()
def service():
    return blobs()


def _create_tenant(name: str):
    service = blobs()
    context = service.tenants.create(name)
    yield name
    service.records.drop(context)
    service.tenants.drop(name)
    shutil.rmtree(get_settings().storage_root / context.slug, ignore_errors=True)


@pytest.fixture()
def tenant():
    yield from _create_tenant(KELDER_TEST_TENANT)


@pytest.fixture()
def tenant2():
    yield from _create_tenant("test_tenant_kelder_other456")
