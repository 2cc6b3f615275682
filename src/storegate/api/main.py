"""Storegate FastAPI application factory.

This module provides the create_app() factory for bootstrapping the API.
"""

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from storegate.api.errors import (
    StoregateHttpError,
    generic_exception_handler,
    http_exception_handler,
    object_storage_error_handler,
    request_validation_error_handler,
    storegate_http_error_handler,
)
from storegate.api.middleware.request_id import RequestIdMiddleware
from storegate.api.routes.health import STOREGATE_VERSION
from storegate.api.routes.health import router as health_router
from storegate.api.routes.storage import router as storage_router
from storegate.observability.tracing import configure_tracing, instrument_fastapi
from storegate.storage.config import load_storage_config
from storegate.storage.errors import ObjectStorageError
from storegate.storage.service import StorageService, create_gateway

logger = logging.getLogger(__name__)


def create_app(service: StorageService | None = None) -> FastAPI:
    """Create and configure the storegate FastAPI application.

    This factory:
    - Builds the StorageService from environment configuration unless one
      is injected
    - Registers RequestIdMiddleware
    - Registers exception handlers for the error envelope
    - Mounts the health and /v1 routers

    Args:
        service: Optional StorageService for testing. If None, configuration
            is loaded from STOREGATE_* environment variables.

    Returns:
        Configured FastAPI application instance.

    Raises:
        StorageConfigError: If environment configuration is invalid.
    """
    if service is None:
        config = load_storage_config()
        service = StorageService(config, create_gateway(config))

    app = FastAPI(
        title="Storegate API",
        description="Multi-tenant object storage naming and file service",
        version=STOREGATE_VERSION,
    )
    app.state.storage_service = service

    configure_tracing()

    app.add_middleware(RequestIdMiddleware)

    instrument_fastapi(app)

    app.add_exception_handler(StoregateHttpError, storegate_http_error_handler)
    app.add_exception_handler(ObjectStorageError, object_storage_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(storage_router)

    logger.info("Storegate API created: backend=%s", service.gateway.backend_name)
    return app
