"""
Kelder Configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the KELDER_ENV_FILE environment variable
"""

import functools
from enum import Enum
from pathlib import Path
from typing import Annotated

from class_doc import extract_docs_from_cls_obj
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "kelder_"
INSECURE_SECRET_KEY = "NOT VERY SECRET YET!"


class StorageOptions(str, Enum):
    #: files are stored below storage_root on the local disk, in sharded tenant directories
    disk = "disk"

    #: files are stored in an S3 compatible bucket, with the sharded path as object name
    s3 = "s3"

    @classmethod
    def validate(cls, value: str):
        if value not in cls.__members__:
            options = ", ".join(StorageOptions.__members__.keys())
            return f"{value} is not a valid storage option. Choose one of {{{options}}}"


# Set the __doc__ attribute of each StorageOptions enum member using extract_docs_from_cls_obj
for field, doc in extract_docs_from_cls_obj(StorageOptions).items():
    StorageOptions[field].__doc__ = "\n".join(doc)


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(
            description="Location of a .env file (if used) relative to working directory",
        ),
    ] = Path(".env")
    host: Annotated[
        str,
        Field(
            description="Host this instance is served at (used for building upload and download URLs)",
        ),
    ] = "http://localhost:5000"

    secret_key: Annotated[
        str,
        Field(
            description="Secret used to sign blob references and tenant elevation tokens. "
            "Rotating it revokes all outstanding references",
        ),
    ] = INSECURE_SECRET_KEY

    default_tenant: Annotated[
        str,
        Field(
            description="Tenant used for requests that do not carry a signed tenant name",
        ),
    ] = "public"

    tenants: Annotated[
        list[str],
        Field(
            description="Tenants to register at startup, as a JSON list of names",
        ),
    ] = []

    tenant_param: Annotated[
        str,
        Field(
            description="Query string parameter carrying the signed tenant name",
        ),
    ] = "signed_tenant_name"

    token_days_valid: Annotated[
        int | None,
        Field(
            description="Number of days signed blob ids and tenant names stay valid (empty: they never expire)",
        ),
    ] = None

    key_token_hours_valid: Annotated[
        int,
        Field(
            description="Number of hours a download URL handed out by the blob redirect stays valid",
        ),
    ] = 1

    storage: Annotated[StorageOptions, Field(description="Which storage backend holds the blob bytes")] = (
        StorageOptions.disk
    )

    storage_root: Annotated[
        Path,
        Field(
            description="Root directory for the disk storage backend",
        ),
    ] = Path("storage")

    shard_depth: Annotated[int, Field(ge=0, description="Number of shard directories below the tenant directory")] = 2
    shard_width: Annotated[int, Field(ge=1, description="Number of key characters per shard directory")] = 2

    s3_host: Annotated[str | None, Field(description="Endpoint URL of the S3 compatible object store")] = None
    s3_access_key: Annotated[str | None, Field()] = None
    s3_secret_key: Annotated[str | None, Field()] = None
    s3_bucket: Annotated[str, Field(description="Bucket holding the blobs of all tenants")] = "kelder"

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)


@functools.lru_cache()
def get_settings() -> Settings:
    # Load the .env file first so it can provide values that are not set in the environment
    temp = Settings()
    load_dotenv(temp.env_file, override=False)
    return Settings()


def validate_settings():
    if get_settings().secret_key == INSECURE_SECRET_KEY:
        return (
            "You are using the default secret key. Anyone can forge blob references and tenant names."
            " Run `python -m kelder create-env` to generate a random secret key."
        )


if __name__ == "__main__":
    # Echo the settings
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")
