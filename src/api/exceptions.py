"""Exception handlers rendering every failure as ``{"error": ..., "details"?: ...}``."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from src.store.redis import StoreUnavailableError
from src.tables.errors import TableServiceError

logger = logging.getLogger(__name__)


async def table_service_exception_handler(request: Request, exc: TableServiceError) -> JSONResponse:
    """Map a typed pipeline failure to its status code."""
    logger.info(
        "request failed",
        extra={"path": request.url.path, "status": exc.status_code, "error": exc.message},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies (wrong JSON types) rather than bad values."""
    details = [
        {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content={"error": "Invalid request body", "details": details})


async def store_exception_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TableServiceError, table_service_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StoreUnavailableError, store_exception_handler)
