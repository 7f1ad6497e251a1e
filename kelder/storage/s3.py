"""
Store blobs in S3-compatible object storage (e.g., AWS S3, MinIO, SeaweedFS, Cloudflare R2).

Object names are the sharded paths, so all objects of a tenant share the "<slug>/" prefix
and can be listed or deleted per tenant.
"""

import logging

import async_lru
from botocore.exceptions import ClientError
from types_aiobotocore_s3.client import S3Client
from types_aiobotocore_s3.type_defs import ObjectIdentifierTypeDef

from kelder.sharding import PathSharder
from kelder.storage.base import StorageService

logger = logging.getLogger("kelder.storage")


@async_lru.alru_cache(maxsize=1000)
async def _create_or_get_bucket(client: S3Client, bucket: str) -> str:
    try:
        await client.head_bucket(Bucket=bucket)
    except ClientError as e:
        error = e.response.get("Error", {})
        if error.get("Code") in ("404", "NoSuchBucket"):
            logger.info(f"Creating bucket {bucket}")
            await client.create_bucket(Bucket=bucket)
        else:
            raise
    return bucket


class S3Service(StorageService):
    name = "s3"

    def __init__(self, client: S3Client, bucket: str, sharder: PathSharder | None = None):
        super().__init__(sharder or PathSharder())
        self.client = client
        self.bucket = bucket

    async def get_bucket(self) -> str:
        """Return the bucket name, creating the bucket if it does not exist yet"""
        return await _create_or_get_bucket(self.client, self.bucket)

    async def upload(self, key: str, data: bytes) -> None:
        bucket = await self.get_bucket()
        await self.client.put_object(Bucket=bucket, Key=self.path_for(key), Body=data)

    async def download(self, key: str) -> bytes:
        bucket = await self.get_bucket()
        try:
            res = await self.client.get_object(Bucket=bucket, Key=self.path_for(key))
        except ClientError as e:
            error = e.response.get("Error", {})
            if error.get("Code") in ("404", "NoSuchKey"):
                raise FileNotFoundError(f"Object {key} not found in bucket {bucket}")
            else:
                raise
        async with res["Body"] as stream:
            return await stream.read()

    async def exists(self, key: str) -> bool:
        bucket = await self.get_bucket()
        try:
            await self.client.head_object(Bucket=bucket, Key=self.path_for(key))
        except ClientError as e:
            error = e.response.get("Error", {})
            if error.get("Code") in ("404", "NoSuchKey"):
                return False
            raise
        return True

    async def delete(self, key: str) -> None:
        bucket = await self.get_bucket()
        await self.client.delete_object(Bucket=bucket, Key=self.path_for(key))

    async def delete_prefix(self, prefix: str) -> None:
        if not prefix.strip("/"):
            raise ValueError("Refusing to delete the whole bucket")
        bucket = await self.get_bucket()
        paginator = self.client.get_paginator("list_objects_v2")
        async for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            if "Contents" in page:
                to_delete: list[ObjectIdentifierTypeDef] = [{"Key": obj["Key"]} for obj in page["Contents"] if "Key" in obj]
                if to_delete:
                    await self.client.delete_objects(Bucket=bucket, Delete={"Objects": to_delete})
