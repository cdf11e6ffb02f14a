import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import close_db
from app.core.exceptions import register_exception_handlers
from app.core.schema import ensure_schema

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup: bring the schema up to date once, not per request
    if settings.SCHEMA_BOOTSTRAP_ON_STARTUP:
        await ensure_schema()
    yield
    # Shutdown: release pooled connections
    await close_db()


app = FastAPI(
    title="Darrwin API",
    description="Veterinary practice scheduling with Sesami booking sync",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "service": "darrwin-api", "version": "0.1.0"}
