"""FastAPI application entrypoint. No business logic; only wiring, error mapping and middleware."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studyshare.api.routes import router as api_router
from studyshare.core.config import Settings, get_settings
from studyshare.core.errors import (
    StudyShareError,
    Unauthorized,
    ValidationFailed,
    field_errors_from_pydantic,
)
from studyshare.repositories import Store, build_store
from studyshare.services.file_storage import FileStorage

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the store on startup unless one was injected; failure to reach the database is fatal."""
    owns_store = app.state.store is None
    if owns_store:
        try:
            app.state.store = build_store(app.state.settings)
        except Exception:
            logger.exception("Storage initialization failed; refusing to start.")
            raise
    logger.info("StudyShare API started (storage=%s)", app.state.settings.STORAGE_BACKEND)
    yield
    if owns_store:
        app.state.store.close()


async def studyshare_error_handler(request: Request, exc: StudyShareError) -> JSONResponse:
    body: dict = {"message": exc.message}
    headers = None
    if isinstance(exc, ValidationFailed) and exc.errors:
        body["errors"] = exc.errors
    if isinstance(exc, Unauthorized):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid input", "errors": field_errors_from_pydantic(exc.errors())},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(
    settings: Settings | None = None,
    store: Store | None = None,
    file_storage: FileStorage | None = None,
) -> FastAPI:
    """
    Build the application. Tests pass their own store and file storage;
    otherwise both come from settings (the store during startup).
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="StudyShare API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.file_storage = file_storage or FileStorage(
        settings.UPLOAD_DIR, settings.MAX_UPLOAD_BYTES
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_ENV == "dev" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StudyShareError, studyshare_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "StudyShare API"}

    return app


app = create_app()
