"""
FastAPI application for the manufacturer web-intelligence pipeline.

Scrapes are triggered per manufacturer, run inline or as background jobs,
and inspected through the job and knowledge endpoints.
"""
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..core.logging import logger
from ..services.lifecycle import JobLifecycle
from ..services.store import get_store
from .exceptions import exception_handlers
from .middleware import add_process_time_header
from .routes import discovery, health, jobs, scrape

DESCRIPTION = "Manufacturer website crawling, profile extraction and website discovery"

# (router, path below API_V1_PREFIX, tag)
ROUTERS = (
    (scrape.router, "", "scraping"),
    (jobs.router, "", "jobs"),
    (discovery.router, "/discovery", "discovery"),
    (health.router, "", "health"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} API (dispatch: {settings.SCRAPE_DISPATCH})")
    # In-process background jobs die with the process that ran them
    if settings.SCRAPE_DISPATCH == "background":
        JobLifecycle(get_store()).fail_stale_jobs()
    yield
    logger.info(f"Shutting down {settings.APP_NAME} API")


app = FastAPI(
    title=settings.APP_NAME,
    description=DESCRIPTION,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(add_process_time_header)

for exc_class, handler in exception_handlers.items():
    app.add_exception_handler(exc_class, handler)

for router, path, tag in ROUTERS:
    app.include_router(router, prefix=f"{settings.API_V1_PREFIX}{path}", tags=[tag])


@app.get("/health", tags=["health"])
async def health_check():
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.APP_VERSION
    }


@app.get("/", tags=["root"])
async def root():
    """Service name, version and where to look next."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": DESCRIPTION,
        "docs": "/docs",
        "health": "/health",
        "api": settings.API_V1_PREFIX
    }


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"}
    )
