"""FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from rich.logging import RichHandler

from clinic.config import settings
from clinic.database import engine
from clinic.models.orm import Base
from clinic.models.schemas import ErrorResponse
from clinic.routers.consultations import router as consultations_router
from clinic.routers.patients import router as patients_router
from clinic.routers.seed import router as seed_router
from clinic.services.errors import ClinicError

logging.basicConfig(
    level=logging.INFO,
    format="%(name)s - %(message)s",
    datefmt="%H:%M:%S",
    handlers=[RichHandler(rich_tracebacks=True, markup=False)],
    force=True,
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
# Our app loggers: show DEBUG when debug=True, keep third-party libs at INFO
if settings.debug:
    for name in ("clinic.services", "clinic.routers", "clinic.ui"):
        logging.getLogger(name).setLevel(logging.DEBUG)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(
    title="Clinic Records",
    description="Patient records and consultation history",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_credentials=True,
    allow_headers=["*"],
)

app.include_router(patients_router)
app.include_router(consultations_router)
app.include_router(seed_router)


def _error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(ClinicError)
async def clinic_error_handler(request: Request, exc: ClinicError) -> JSONResponse:
    if exc.http_status >= 500:
        # Cause stays server-side; the client only gets the generic message.
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc
        )
    else:
        logger.info("%s %s -> %d %s", request.method, request.url.path, exc.http_status, exc.code)
    return _error_response(exc.http_status, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    fields = sorted({str(err["loc"][-1]) for err in errors if err.get("loc")})
    logger.info("%s %s -> 400 invalid %s", request.method, request.url.path, fields)
    details = "; ".join(f"{err['loc'][-1]}: {err['msg']}" for err in errors if err.get("loc"))
    return _error_response(400, f"Invalid input: {', '.join(fields)}", details or None)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s failed unexpectedly", request.method, request.url.path, exc_info=exc)
    return _error_response(500, "Internal server error")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
