"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.mp_admin.api.router import router as admin_router
from src.mp_common.database import async_session_factory, engine
from src.mp_common.errors import AppError, InternalError
from src.mp_common.redis_client import close_redis, get_redis
from src.mp_common.response import error_response
from src.mp_fees.api.router import router as fees_router
from src.mp_gateway.middleware.request_log import RequestLogMiddleware, get_request_id
from src.mp_ledger.api.router import router as ledger_router
from src.mp_listing.api.router import router as listing_router
from src.mp_offer.api.router import router as offer_router
from src.mp_offer.application.sweeper import run_expiry_sweeper
from src.mp_transaction.api.router import router as transaction_router
from src.mp_transaction.api.user_router import router as user_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, open Redis pool, start expiry sweeper. Shutdown: dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    sweeper: asyncio.Task[None] | None = None
    if settings.OFFER_EXPIRY_SWEEP_SECONDS > 0:
        sweeper = asyncio.create_task(
            run_expiry_sweeper(async_session_factory, settings.OFFER_EXPIRY_SWEEP_SECONDS)
        )
    yield
    # Shutdown
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, exc.details, get_request_id(request))
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    resp = error_response(0, "Invalid request", details, get_request_id(request))
    return JSONResponse(status_code=400, content=resp.model_dump())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    err = InternalError()
    resp = error_response(err.code, err.message, None, get_request_id(request))
    return JSONResponse(status_code=500, content=resp.model_dump())


app.include_router(listing_router, prefix="/api/v1")
app.include_router(offer_router, prefix="/api/v1")
app.include_router(transaction_router, prefix="/api/v1")
app.include_router(ledger_router, prefix="/api/v1")
app.include_router(fees_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(user_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
