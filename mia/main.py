"""MIA — FastAPI Application Entry Point.

Marketing Intelligence Agent.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from mia.scheduler.jobs import start_scheduler, stop_scheduler
from mia.api.insight_routes import router as insight_router
from mia.api.analytics_routes import router as analytics_router
from mia.api.transform_routes import router as transform_router
from mia.api.chat_routes import router as chat_router
from mia.api.meta_routes import router as meta_router
from mia.core.logging import get_logger

logger = get_logger("main")

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("🚀 MIA starting up...")
    start_scheduler()
    yield
    stop_scheduler()
    logger.info("MIA shut down")


app = FastAPI(
    title="MIA",
    description="Marketing Intelligence Agent — normalize Google & Meta ad data, run rule-based insight analysis, answer marketing questions.",
    version=VERSION,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.info(
        f"{request.method} {request.url.path} → {response.status_code}",
        extra={
            "endpoint": request.url.path,
            "duration_ms": duration_ms,
            "status_code": response.status_code,
        },
    )
    return response


# Routers
app.include_router(insight_router)
app.include_router(analytics_router)
app.include_router(transform_router)
app.include_router(chat_router)
app.include_router(meta_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "mia",
        "version": VERSION,
    }
