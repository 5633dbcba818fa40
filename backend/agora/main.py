"""FastAPI application serving the Agora event and payout API."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agora import __version__
from agora.api.routes import (
    admin_router,
    events_router,
    participation_router,
    treasury_router,
    wallets_router,
)
from agora.config import get_settings
from agora.database import check_db_connection, close_db, get_db_info, init_db
from agora.observability import configure_logging, initialize_logfire
from agora.schemas.common import ErrorResponse
from agora.utils.errors import AgoraError, format_api_error

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings)
    initialize_logfire(settings, service_name="agora-api")

    await init_db()
    db_url = get_db_info()["url"]
    if await check_db_connection():
        logger.info(f"Agora API {__version__} up ({settings.environment}), database {db_url}")
    else:
        logger.error(f"Agora API started but database {db_url} is unreachable")

    yield

    await close_db()
    logger.info("Agora API stopped")


app = FastAPI(
    title="Agora API",
    description="Settlement and payout engine for community votes and wagers",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
    responses={"4XX": {"model": ErrorResponse}},
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AgoraError)
async def agora_error_handler(request: Request, exc: AgoraError) -> JSONResponse:
    """Domain errors become ``{"error", "message", "details"}`` with their status code."""
    return JSONResponse(status_code=exc.status_code, content=format_api_error(exc))


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    db_connected = await check_db_connection()
    return {
        "status": "healthy" if db_connected else "degraded",
        "service": "agora-api",
        "version": __version__,
        "database": "connected" if db_connected else "disconnected",
        "environment": settings.environment,
    }


for router in (events_router, participation_router, admin_router, treasury_router, wallets_router):
    app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "agora.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
