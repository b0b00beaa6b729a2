"""HTTP middleware."""
import time

from fastapi import Request

from ..core.logging import logger


async def add_process_time_header(request: Request, call_next):
    """Time each request, expose it as X-Process-Time and log the outcome."""
    started = time.perf_counter()
    route = f"{request.method} {request.url.path}"

    try:
        response = await call_next(request)
    except Exception as exc:
        logger.error(f"{route} raised after {time.perf_counter() - started:.3f}s: {exc}")
        raise

    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    logger.info(f"{route} -> {response.status_code} in {elapsed:.3f}s")
    return response
