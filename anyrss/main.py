"""FastAPI application entry point."""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import cast

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from anyrss import __version__
from anyrss.config import Settings, get_settings
from anyrss.errors import (
    AlreadyExistsError,
    AnyRSSError,
    InvalidInputError,
    NotFoundError,
)
from anyrss.idgen import IDGenerator
from anyrss.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)
from anyrss.routes import channels_router, health_router
from anyrss.services import ChannelStore, FeedService
from anyrss.storage import KVStore

logger = get_logger(__name__)

_ERROR_STATUS: dict[type[AnyRSSError], int] = {
    InvalidInputError: 400,
    NotFoundError: 404,
    AlreadyExistsError: 409,
}


def error_status(error: AnyRSSError) -> int:
    """HTTP status for an error kind; storage failures map to 500."""
    for error_type, status in _ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 500


async def bind_request_fields(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Start each request with a fresh log context holding its id, method and path."""
    clear_request_context()
    bind_request_context(
        request_id=uuid.uuid4().hex,
        method=request.method,
        path=request.url.path,
    )
    return await call_next(request)


async def anyrss_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Abort the request and report the error message."""
    # registered for AnyRSSError only
    error = cast(AnyRSSError, exc)
    status = error_status(error)
    log = logger.error if status >= 500 else logger.info
    log(
        "request failed",
        status=status,
        error=str(error),
        error_type=type(error).__name__,
    )
    return JSONResponse(status_code=status, content={"detail": str(error)})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the store and run the ID generator for the lifetime of the app."""
    settings: Settings = app.state.settings
    store = KVStore(settings.db_file)
    ids = IDGenerator(store, baseline=settings.id_baseline)
    app.state.store = store
    app.state.ids = ids
    try:
        ids.start()
        app.state.feed_service = FeedService(
            ChannelStore(store), ids, feed_list_limit=settings.feed_list_limit
        )
        logger.info(
            "anyrss starting",
            db_file=settings.db_file,
            log_level=settings.log_level,
            last_id=ids.last_id,
        )
        yield
    finally:
        ids.stop()
        store.close()
        logger.info("anyrss stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters
    ----------
    settings : Settings | None
        Settings to use; defaults to the environment-derived settings.
    """
    app = FastAPI(
        title="anyrss",
        description="Channel-based feed store with JSON and RSS views",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings or get_settings()
    app.add_exception_handler(AnyRSSError, anyrss_error_handler)
    app.middleware("http")(bind_request_fields)

    app.include_router(health_router, tags=["health"])
    app.include_router(channels_router, tags=["channels"])
    return app


def main() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(
        json_logs=settings.environment != "development",
        log_level=settings.log_level,
        component="server",
        environment=settings.environment,
        quiet_paths=settings.quiet_access_paths,
    )

    uvicorn.run(
        "anyrss.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_config=None,  # Use our structlog configuration
    )


if __name__ == "__main__":
    main()
