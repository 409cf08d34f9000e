from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from jobconnect.routers import applications, jobs

# Import logging and middleware
from jobconnect.utils.config import get_settings
from jobconnect.utils.logging_config import configure_for_environment, get_logger
from jobconnect.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestLoggingMiddleware,
    PerformanceMiddleware,
    register_exception_handlers
)
from jobconnect.services.providers import get_notifier
from jobconnect.utils.exceptions import ConfigurationError

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)

settings = get_settings()
UPLOAD_ROOT = Path(settings.local_upload_dir).parent
Path(settings.local_upload_dir).mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("JobConnect ATS API starting up...")

    try:
        from jobconnect.services.db import init_indexes
        await init_indexes()
        logger.info("Database indexes initialized successfully")
    except ConfigurationError as e:
        logger.error(f"Startup aborted: {e.message}", extra={"error": e.to_dict()})
        raise
    except Exception as e:
        logger.warning(f"Database index initialization had issues: {e}")
        logger.info("Application will continue - duplicate submissions are only caught by the pre-check until indexes exist")

    yield

    logger.info("JobConnect ATS API shutting down...")
    await get_notifier().drain()
    logger.info("JobConnect ATS API shutdown completed")


app = FastAPI(title="JobConnect ATS API", version="1.0.0", lifespan=lifespan)

# Middleware runs LIFO: the exception handler wraps logging and timing
app.add_middleware(PerformanceMiddleware, slow_request_threshold=5.0)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ExceptionHandlerMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Locally stored resumes when object storage is unavailable
app.mount("/uploads", StaticFiles(directory=str(UPLOAD_ROOT)), name="uploads")


@app.get("/")
@app.head("/")
async def root():
    return {"message": "Welcome to the JobConnect ATS API", "version": "1.0.0", "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
app.include_router(applications.router, prefix="/api/applications", tags=["applications"])

logger.info("JobConnect ATS API initialized successfully")
