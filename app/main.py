from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.http import health_router, auth_router, tours_router, public_router, analytics_router
from app.core.config import settings
from app.core.db import create_tables
from app.core.errors import setup_exception_handlers
from app.core.logging_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        await create_tables()
        logger.info("Database tables ensured")
    yield


app = FastAPI(
    title="TourCraft",
    description="Author annotated screenshot walkthroughs and share them by public link",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

# Uploaded screenshots
os.makedirs(settings.upload_dir, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(tours_router)
app.include_router(public_router)
app.include_router(analytics_router)


@app.get("/")
async def root():
    return {
        "message": "TourCraft API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }
