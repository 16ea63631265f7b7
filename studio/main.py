"""
Wardrobe Studio API
FastAPI Backend Entry Point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from studio.core.config import settings
from studio.core.database import SessionLocal, init_db
from studio.core.redis import get_redis_manager, redis_health_check
from studio.api import items, jobs

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info(f"Starting {settings.APP_NAME}...")
    init_db()
    yield
    get_redis_manager().close()
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    description="AI job orchestration for wardrobe imagery: tagging, product shots, headshots, body shots and outfit renders",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(jobs.router, prefix="/api/v1/jobs", tags=["Jobs"])
app.include_router(items.router, prefix="/api/v1/items", tags=["Wardrobe Items"])


@app.get("/health", tags=["Health"])
async def health_check():
    """Status of the database and the execution queue."""
    status = {
        "status": "healthy",
        "version": VERSION,
        "environment": {
            "storage": "gcs" if settings.USE_GCS else ("local" if settings.USE_LOCAL_STORAGE else "s3"),
            "database": "sqlite" if settings.DATABASE_URL.startswith("sqlite") else "postgresql",
        },
        "services": {}
    }

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        status["services"]["database"] = "ok"
    except SQLAlchemyError as e:
        status["services"]["database"] = f"error: {e}"
        status["status"] = "degraded"
    finally:
        db.close()

    redis_status = redis_health_check()
    if redis_status.get("connected"):
        status["services"]["redis"] = "ok"
    else:
        status["services"]["redis"] = f"error: {redis_status.get('error', 'not connected')}"
        status["status"] = "degraded"

    return status


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": settings.APP_NAME,
        "docs": "/docs",
        "health": "/health",
    }
