from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from parkshare.config.settings_env import settings
from parkshare.domain.errors import (
    ConflictError, NotAllowedError, NotFoundError, ParkingError, TransientStoreError, ValidationError,
)
from parkshare.infrastructure.api.routers.marketplace import router
from parkshare.infrastructure.persistence.database import async_engine
from parkshare.infrastructure.persistence.models.models import Base

STATUS_BY_ERROR = {
    ValidationError: 400,
    NotAllowedError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    TransientStoreError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("ParkShare API ready")
    yield
    await async_engine.dispose()


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(ParkingError)
    async def parking_error_handler(request: Request, exc: ParkingError):
        status_code = STATUS_BY_ERROR.get(type(exc), 400)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected ({exc.reason.value}): {exc.message}")
        headers = {"Retry-After": "1"} if isinstance(exc, TransientStoreError) else None
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "reason": exc.reason.value},
            headers=headers,
        )


def create_app() -> FastAPI:
    app = FastAPI(title="ParkShare", lifespan=lifespan)
    setup_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()


def run():
    import uvicorn

    uvicorn.run(app, host=settings.FASTAPI_HOST, port=settings.FASTAPI_PORT)
