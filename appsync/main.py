"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from appsync import __version__
from appsync.api import health, webhook
from appsync.core.config import settings
from appsync.core.logging import setup_logging
from appsync.exceptions import WebhookError
from appsync.middleware.request_logging import RequestLoggingMiddleware

setup_logging(settings.logging.level)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

app = FastAPI(
    title="appsync",
    description="GitHub App repository sync and webhook reconciliation",
    version=__version__,
    docs_url=f"{API_PREFIX}/docs",
    redoc_url=None,
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(health.router, prefix=API_PREFIX)
app.include_router(webhook.router, prefix=API_PREFIX)


@app.exception_handler(WebhookError)
async def webhook_error_handler(request: Request, exc: WebhookError) -> JSONResponse:
    logger.warning(
        "Webhook rejected",
        extra={"status": exc.status_code, "reason": exc.message, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})
