"""Run the Manufacturer Intel API with uvicorn."""

import uvicorn

from manufacturer_intel.core.config import settings
from manufacturer_intel.core.logging import logger


def main():
    # In-process background jobs are only visible to the worker that started them
    workers = 1 if settings.API_RELOAD or settings.SCRAPE_DISPATCH == "background" else settings.API_WORKERS
    logger.info(
        f"Starting {settings.APP_NAME} API on {settings.API_HOST}:{settings.API_PORT} "
        f"({workers} worker(s), reload={settings.API_RELOAD})"
    )
    uvicorn.run(
        "manufacturer_intel.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD,
        reload_dirs=["src"] if settings.API_RELOAD else None,
        workers=workers,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
