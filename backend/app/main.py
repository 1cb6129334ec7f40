import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from backend.app.api.v1.router import api_router
from backend.app.container import Container, build_container
from backend.app.core import errors
from backend.app.core.config import Settings, get_settings
from backend.app.core.logging_config import configure_logging
from backend.app.db.session import create_tables

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"code": status_code, "message": message},
        headers=headers,
    )


async def strongbox_error_handler(request: Request, exc: errors.StrongboxError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _error(exc.status_code, exc.message, headers)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg', '')}"
        for e in exc.errors()
    )
    return _error(422, f"Unable to parse request: {details}")


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} raised an unexpected error")
    return _error(500, errors.StrongboxError.default_message)


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[Container] = None,
) -> FastAPI:
    settings = settings or (container.settings if container else get_settings())
    configure_logging(settings)
    container = container or build_container(settings)

    # --- LIFESPAN: create tables and the blob directory on start-up ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await create_tables(container.engine)
        container.file_service.ensure_storage()
        logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")
        yield
        await container.engine.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )
    app.state.container = container

    # Set up CORS
    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.BACKEND_CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(errors.StrongboxError, strongbox_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    return app
