import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import FetchError, NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)


async def fetch_error_handler(_request: Request, exc: FetchError) -> JSONResponse:
    logger.error("Fetch error: %s (status=%s)", exc.message, exc.status_code)
    return JSONResponse(
        status_code=502,
        content={"detail": exc.message, "url": exc.url, "upstream_status": exc.status_code},
    )


async def validation_error_handler(_request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning("Rejected input: %s", exc.message)
    return JSONResponse(status_code=422, content={"detail": exc.message})


async def not_found_error_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": exc.message})


async def storage_error_handler(_request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage error: %s", exc.message)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Storage error: {exc.message}"},
    )
