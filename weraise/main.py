"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from weraise.api.v1.router import api_v1_router
from weraise.core.config import settings
from weraise.core.exceptions import (
    ApiError,
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from weraise.core.logging import setup_logging
from weraise.core.middleware.cors import get_cors_config
from weraise.core.middleware.request_id import RequestIdMiddleware

setup_logging(level=settings.LOG_LEVEL, log_format=settings.LOG_FORMAT)

app = FastAPI(
    title="WeRaise API",
    version="0.1.0",
    docs_url="/docs",
    openapi_url="/openapi.json",
)

# Middleware (last added = first executed)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(CORSMiddleware, **get_cors_config())

# Exception handlers ({error, message, details} envelope)
app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Routes
app.include_router(api_v1_router, prefix="/api/v1")
