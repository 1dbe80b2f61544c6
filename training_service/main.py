"""Main FastAPI application for Training Progress Service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import structlog
from prometheus_fastapi_instrumentator import Instrumentator

from training_service.core.config import settings
from training_service.core.logging import setup_logging
from training_service.core.database import init_db, get_db
from training_service.core.dependencies import get_content_catalog, close_http_client
from training_service.core.exceptions import TrainingError
from training_service.routers import training

# Setup structured logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle manager."""
    logger.info("Starting Training Progress Service", version=settings.APP_VERSION)

    await init_db()
    await get_content_catalog()

    logger.info("Training progress service initialized successfully")

    yield

    logger.info("Shutting down Training Progress Service")
    await close_http_client()


# Create FastAPI app
app = FastAPI(
    title="Training Progress Service",
    description="Quiz grading, topic completion and course progress for training courses",
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus metrics
if settings.ENABLE_METRICS:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")

# Include routers
app.include_router(training.router, prefix="/api/training", tags=["training"])


@app.exception_handler(TrainingError)
async def training_error_handler(request: Request, exc: TrainingError):
    """Render engine errors with their kind preserved."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        error=exc.code,
        detail=exc.message,
        path=request.url.path,
        retryable=exc.retryable
    )
    return JSONResponse(content=exc.to_dict(), status_code=exc.status_code)


@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    health_status = {
        "status": "healthy",
        "service": settings.SERVICE_NAME,
        "version": settings.APP_VERSION,
        "checks": {}
    }

    try:
        async for db in get_db():
            await db.execute(text("SELECT 1"))
            health_status["checks"]["database"] = "healthy"
    except Exception as e:
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "training_service.main:app",
        host="0.0.0.0",
        port=settings.SERVICE_PORT,
        reload=settings.ENVIRONMENT == "development",
        log_config=None  # Use structlog instead
    )
