"""Exception handlers that turn pipeline errors into JSON responses."""
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from ..core.exceptions import ManufacturerIntelError
from ..core.logging import logger


def _error_body(detail, error_type: str, details: dict = None) -> dict:
    body = {"detail": detail, "type": error_type}
    if details is not None:
        body["details"] = details
    return body


async def manufacturer_intel_exception_handler(request: Request, exc: ManufacturerIntelError):
    """
    Respond with the status carried by the exception.

    Client errors (4xx) log at WARNING, upstream and crawl failures at ERROR.
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{request.method} {request.url.path} failed with {type(exc).__name__}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, type(exc).__name__, exc.details),
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(f"{request.method} {request.url.path} -> HTTP {exc.status_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.detail, "http_error"))


exception_handlers = {
    ManufacturerIntelError: manufacturer_intel_exception_handler,
    HTTPException: http_exception_handler,
}
