import sys
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from os import environ
from pathlib import Path

import logfire
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from granian import Granian
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.errors import app_error_handler
from app.api.outputs import mount_hls
from app.api.outputs import router as outputs_router
from app.api.ws.ingest import router as ingest_router
from app.app_config import get_app_environ_config
from app.core.api.errors import E_INTERNAL, E_INVALID_PARAMS
from app.core.api.health import router as health_router
from app.core.api.utils import api_failure, init_logger, load_routes
from app.domain.live.stream.stream_manager import (
    StreamSessionManager,
    close_stream_manager,
    init_stream_manager,
)
from app.utils.app_errors import AppError

app_config = get_app_environ_config()


class HTTPLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore
        start_time = time.time()
        request_id = str(uuid.uuid4())[:8]

        logger.info(f"[{request_id}] {request.method} {request.url.path}")

        try:
            response = await call_next(request)

            process_time = (time.time() - start_time) * 1000

            logger.info(
                f"[{request_id}] {request.method} {request.url.path} - "
                f"Status: {response.status_code} - "
                f"Duration: {process_time:.2f}ms"
            )

            return response

        except Exception as exc:
            process_time = (time.time() - start_time) * 1000

            logger.error(
                f"[{request_id}] Unhandled exception in {request.method} {request.url.path} - "
                f"Duration: {process_time:.2f}ms - "
                f"Error: {type(exc).__name__}: {exc}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            failure = api_failure(
                errcode=E_INTERNAL,
                errmesg=f"Internal server error (request_id: {request_id})",
            )
            return ORJSONResponse(
                status_code=500,
                content=failure.model_dump(),
            )


async def app_validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()

    logger.warning(
        "Validation error: path={} method={} errors={}",
        request.url.path,
        request.method,
        errors,
    )

    failure = api_failure(E_INVALID_PARAMS, errmesg=str(errors))

    return ORJSONResponse(status_code=422, content=failure.model_dump())


@asynccontextmanager
async def lifespan(server: FastAPI):
    init_logger()

    logger.info("Application startup...")

    init_stream_manager(app_config)

    if app_config.LOGFIRE_ENABLE:
        logger.info("Logfire initializing")

        logfire.configure(
            token=app_config.LOGFIRE_TOKEN,
            service_name="audio-relay",
            service_version=environ.get("BUILD_COMMIT") or "dev",
        )

        logger.info("Logfire instrument fastapi")
        logfire.instrument_fastapi(server, capture_headers=True)

        logger.info("Logfire instrument pydantic")
        logfire.instrument_pydantic()

    yield

    logger.info("Application shutdown...")

    await close_stream_manager()


app = FastAPI(
    version="1.0",
    title="Audio Relay",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(HTTPLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,  # type: ignore
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, app_validation_exception_handler)  # type: ignore
app.add_exception_handler(AppError, app_error_handler)  # type: ignore

app.include_router(health_router)
app.include_router(ingest_router)
app.include_router(outputs_router)
load_routes(app, "/api/v1")
mount_hls(app, Path(app_config.HLS_ROOT).resolve())


def preflight() -> None:
    """Check the stream manager can start, exiting with a non-zero status otherwise."""
    init_logger()
    try:
        StreamSessionManager(app_config).initialize()
    except Exception as e:
        logger.error(f"Failed to initialize stream manager: {e}")
        sys.exit(1)


def build_granian_kwargs():
    workers = app_config.API_WORKERS
    if workers != 1:
        logger.warning(f"API_WORKERS={workers} ignored, streams are tracked in a single process")

    kwargs = {
        "interface": "asgi",
        "address": app_config.API_HOST,
        "port": app_config.API_PORT,
        "workers": 1,
        "reload": app_config.DEBUG,
    }

    return kwargs


if __name__ == "__main__":
    preflight()
    granian_kwargs = build_granian_kwargs()
    Granian("app.main:app", **granian_kwargs).serve()
