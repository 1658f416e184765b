from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from jobmatch.routers import ai

# Import logging and middleware
from jobmatch.utils.logging_config import configure_for_environment, get_logger
from jobmatch.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestLoggingMiddleware,
    PerformanceMiddleware,
)

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("Job Match API starting up...")
    logger.info("Initializing database indexes...")

    try:
        from jobmatch.services.db import init_indexes
        await init_indexes()
        logger.info("Database indexes initialized successfully")
    except Exception as e:
        logger.warning(f"Database index initialization had issues: {e}")
        logger.info("Application will continue - some operations may be slower without indexes")

    logger.info("Job Match API startup completed")

    yield

    logger.info("Job Match API shutting down...")


app = FastAPI(title="Job Match API", version="1.0.0", lifespan=lifespan)

# Add middleware in order (LIFO - Last In, First Out)
# Exception handler should be the outermost middleware
app.add_middleware(PerformanceMiddleware, slow_request_threshold=2.0)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ExceptionHandlerMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
@app.head("/")
async def root():
    """Root endpoint - handles both GET and HEAD requests for health checks"""
    logger.debug("Root endpoint accessed")
    return {"message": "Welcome to the Job Match API", "version": "1.0.0", "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


app.include_router(ai.router, prefix="/api")

logger.info("Job Match API initialized successfully")
