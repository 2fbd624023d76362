from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from insta_relay.config import Settings
from insta_relay.db import CredentialStore, build_engine
from insta_relay.errors import RelayError, ValidationError
from insta_relay.graph_client import GraphClient
from insta_relay.routes import router as instagram_router

logger = logging.getLogger("insta-relay")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
# httpx logs full request URLs, which carry tokens and the app secret
QUIET_LOGGERS = ("httpx", "httpcore")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}
GENERIC_ERROR_DETAILS = "An unexpected error occurred"


def create_app(
    settings: Settings | None = None,
    http_client: httpx.Client | None = None,
    store: CredentialStore | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    http_client = http_client or httpx.Client(timeout=settings.graph_timeout_seconds)
    store = store or CredentialStore(build_engine(settings.database_url))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        store.init_schema()
        logger.info("startup graph_api_version=%s env=%s", settings.graph_api_version, settings.app_env)
        try:
            yield
        finally:
            http_client.close()
            store.dispose()
            logger.info("shutdown")

    app = FastAPI(title="Instagram Relay", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.graph_client = GraphClient(
        http_client,
        settings.facebook_app_id,
        settings.facebook_app_secret,
        api_version=settings.graph_api_version,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next) -> Response:
        start_time = time.perf_counter()
        response_status = 500
        try:
            response = await call_next(request)
            response_status = response.status_code
            response.headers.update(SECURITY_HEADERS)
            return response
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "request method=%s path=%s status=%s duration_ms=%.2f",
                request.method,
                request.url.path,
                response_status,
                duration_ms,
            )

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
        body = exc.to_body()
        if exc.status_code >= 500 and settings.is_production:
            body["details"] = GENERIC_ERROR_DETAILS
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError("; ".join(_describe(err) for err in exc.errors()) or "Invalid request body")
        return JSONResponse(status_code=error.status_code, content=error.to_body())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error path=%s", request.url.path)
        details = GENERIC_ERROR_DETAILS if settings.is_production else str(exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "details": details},
            headers=SECURITY_HEADERS,
        )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    app.include_router(instagram_router)
    return app


def _describe(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


app = create_app()
