import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from archboard.api.main import api_router
from archboard.core.config import settings
from archboard.exceptions import (
    ArchboardError,
    InvalidInputError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
)
from archboard.stores import build_storage

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[ArchboardError], int] = {
    NotFoundError: 404,
    UnauthorizedError: 401,
    InvalidInputError: 400,
    StorageError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.storage = build_storage(settings)
    logger.info("Storage backend: %s", app.state.storage.backend)
    yield


async def archboard_error_handler(request: Request, exc: ArchboardError) -> JSONResponse:
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content={"detail": "Internal storage error"})
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    message = "; ".join(
        f"{'.'.join(error['loc'][1:]) or 'body'}: {error['msg']}" for error in errors
    )
    return JSONResponse(status_code=400, content={"detail": message, "errors": errors})


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    if settings.all_cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.all_cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(ArchboardError, archboard_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
