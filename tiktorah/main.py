import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tiktorah.api import feed_router, health_router
from tiktorah.api.feed import get_registry
from tiktorah.config import settings
from tiktorah.models.failure import KnownError, create_unknown_failure

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    yield
    await get_registry().close_all()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("tiktorah"),
    lifespan=lifespan,
)

app.include_router(feed_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Known failures raised below the routes become enveloped responses."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def unknown_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """No raw 500s: anything unexpected is reported as an unknown failure."""
    logger.exception("UNHANDLED_ERROR", extra={"error_type": type(exc).__name__})
    return JSONResponse(
        status_code=500,
        content=create_unknown_failure(exc).model_dump(mode="json"),
    )
