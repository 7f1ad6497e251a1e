"""Kelder API: tenant aware blob storage."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kelder.api.blobs import app_blobs
from kelder.api.elevator import TenantElevator
from kelder.api.info import app_info
from kelder.connections import kelder_connections
from kelder.errors import InvalidSignature, MalformedKey, TenantSwitchFailure


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.info("Starting blob storage...")
    async with kelder_connections():
        yield


app = FastAPI(
    title="Kelder",
    description=__doc__ if __doc__ else "",
    openapi_tags=[
        dict(name="blobs", description="Endpoints to upload and download blobs"),
        dict(name="informational", description="Endpoints for server information"),
    ],
    lifespan=lifespan,
)
app.include_router(app_info)
app.include_router(app_blobs)
# CORS wraps the tenant elevator, which in turn wraps routing
app.add_middleware(TenantElevator)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidSignature)
async def invalid_signature_exception_handler(request: Request, exc: InvalidSignature):
    return JSONResponse(
        status_code=403,
        content={"message": f"Invalid signature: {exc}"},
    )


@app.exception_handler(TenantSwitchFailure)
async def tenant_switch_exception_handler(request: Request, exc: TenantSwitchFailure):
    return JSONResponse(
        status_code=404,
        content={"message": str(exc)},
    )


@app.exception_handler(MalformedKey)
async def malformed_key_exception_handler(request: Request, exc: MalformedKey):
    return JSONResponse(
        status_code=404,
        content={"message": "Object not found"},
    )


@app.exception_handler(KeyError)
async def key_error_exception_handler(request: Request, exc: KeyError):
    return JSONResponse(
        status_code=404,
        content={"message": str(exc.args[0]) if exc.args else "Not found"},
    )


@app.exception_handler(ValueError)
async def value_error_exception_handler(request: Request, exc: ValueError):
    return JSONResponse(
        status_code=400,
        content={"message": str(exc)},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=422, content={"message": "There was an issue with the data you sent.", "fields_invalid": exc.errors()}
    )
