import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from menorah_live.api import routers
from menorah_live.core.config import Settings, get_settings
from menorah_live.core.dependencies import build_services
from menorah_live.core.errors import NotFoundError, StorageError, ValidationError, from_request_validation
from menorah_live.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, table=None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)
    services = build_services(settings, table=table)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.DYNAMODB_CREATE_TABLE:
            await run_in_threadpool(services.data_access.create_table)
        await run_in_threadpool(services.config_service.ensure_initialized)
        logger.info("Campaign store initialized")
        yield

    app = FastAPI(title="Menorah Live API", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.info(f"Rejected {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return await validation_error_handler(request, from_request_validation(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/")
    def read_root():
        return {"message": "Menorah Live API"}

    app.include_router(routers.router)
    app.include_router(routers.ws_router)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT, log_config=None)
