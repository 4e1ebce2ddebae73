"""Image upload and sharing service for legacy browsers"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from imageshare.core.config import STATIC_DIR, get_settings
from imageshare.core.constants import (
    APP_DESCRIPTION,
    APP_TITLE,
    APP_VERSION,
    ERROR_INTERNAL,
    HTTP_500_INTERNAL_SERVER_ERROR,
)
from imageshare.core.rate_limiter import limiter
from imageshare.core.storage import reset_upload_dir, scheduler
from imageshare.core.titles import get_title_database

from .api.routes import router

logger = logging.getLogger(__name__)


def setup_logging(level_name: str) -> None:
    """Configure the root logger once."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"),
        )
        root.addHandler(handler)
    root.setLevel(level)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    setup_logging(settings.log_level)

    # Uploads from a previous run have lost their deletion timers
    reset_upload_dir(settings.upload_dir)
    get_title_database()

    logger.info("Domain: %s", settings.web_domain)
    logger.info("Image delete delay: %s minute(s)", settings.delete_delay)
    logger.info("Image upload directory: %s", settings.external_dir or "Default")
    logger.info("Imgur uploads: %s", "enabled" if settings.imgur_enabled else "disabled")

    yield

    scheduler.cancel_all()


async def unhandled_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    logger.error(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return PlainTextResponse(ERROR_INTERNAL, status_code=HTTP_500_INTERNAL_SERVER_ERROR)


app = FastAPI(
    title=APP_TITLE,
    description=APP_DESCRIPTION,
    version=APP_VERSION,
    lifespan=lifespan,
)

# Add rate limiting to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Include API routes
app.include_router(router)

# Static files, mounted last so the page routes take precedence
app.mount("/", StaticFiles(directory=STATIC_DIR), name="static")
