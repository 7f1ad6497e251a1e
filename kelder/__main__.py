"""
Kelder tenant aware blob storage
"""

import argparse
import asyncio
import inspect
import logging
import os
import secrets
import sys
from pathlib import Path

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from kelder.config import get_settings, validate_settings
from kelder.connections import kelder_connections


def run(args):
    settings = get_settings()
    logging.info(f"Starting server at port {args.port}, debug={not args.nodebug}, storage={settings.storage.value}")
    if validate_settings():
        logging.warning(validate_settings())
    logging.info(
        "To change server config, create an .env file and/or set environment parameters,\n"
        f"{' ' * 26}see kelder/config.py for more information.\n"
        f"{' ' * 26}You can also run `python -m kelder create-env` to create a .env file with a random secret key\n"
    )

    log_config = "logging.yml" if Path("logging.yml").exists() else LOGGING_CONFIG
    uvicorn.run("kelder.api:app", host="0.0.0.0", reload=not args.nodebug, port=int(args.port), log_config=log_config)


async def sign_tenant(args) -> None:
    """Print the query string that elevates requests into the given tenant"""
    from kelder.api.elevator import signed_tenant_query

    async with kelder_connections() as service:
        if not service.tenants.exists(args.tenant):
            logging.error(f"Unknown tenant {args.tenant}, add it to the kelder_tenants setting first")
            sys.exit(1)
        print(signed_tenant_query(args.tenant))


def base_env():
    return dict(
        kelder_secret_key=secrets.token_hex(nbytes=32),
    )


def create_env(args):
    if os.path.exists(".env"):
        print("*** File .env already exists, quitting ***")
        sys.exit(1)

    env = base_env()
    if args.storage_root:
        env["kelder_storage_root"] = args.storage_root
    with open(".env", "w") as f:
        for key, val in env.items():
            f.write(f"{key}={val}\n")
    os.chmod(".env", 0o600)
    print("*** Created .env file ***")


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m kelder")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("run", help="Run the backend API in development mode")
    p.add_argument(
        "--no-debug",
        action="store_true",
        dest="nodebug",
        help="Disable debug mode (useful for testing downstream clients)",
    )
    p.add_argument("-p", "--port", help="Port", default=5000)
    p.set_defaults(func=run)

    p = subparsers.add_parser("create-env", help="Create the .env file with a random secret key")
    p.add_argument("-r", "--storage_root", help="Directory to store blobs in when using disk storage.")
    p.set_defaults(func=create_env)

    p = subparsers.add_parser("sign-tenant", help="Print the signed query string for a tenant")
    p.add_argument("tenant", help="The name of the tenant.")
    p.set_defaults(func=sign_tenant)

    args = parser.parse_args()

    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=logging.INFO)

    if inspect.iscoroutinefunction(args.func):
        asyncio.run(args.func(args))
    else:
        args.func(args)


if __name__ == "__main__":
    main()
