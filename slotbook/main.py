from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from slotbook.api.v1.api import api_router
from slotbook.core.config import settings
from slotbook.core.database import init_db
from slotbook.core.logging import configure_logging
from slotbook.core.redis import redis_client

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info(
        "Starting application",
        project=settings.PROJECT_NAME,
        environment=settings.ENVIRONMENT,
    )
    await init_db()
    if redis_client.enabled:
        await redis_client.init_redis()
    yield
    await redis_client.close()
    logger.info("Application stopped")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": settings.VERSION}
