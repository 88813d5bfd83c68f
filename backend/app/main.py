"""
TalentLens ATS - Main FastAPI application
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from app.core.config import settings
from app.core.database import init_db
from app.core.logging_config import configure_logging
from app.core.middleware import (
    RequestContextMiddleware,
    UnhandledErrorMiddleware,
    error_body,
)
from app.core.exceptions import ATSException
from app.resumes.router import router as resumes_router
from app.jobs.router import router as jobs_router
from app.candidates.router import router as candidates_router
from app.matching.router import router as matching_router

# Configure logging
configure_logging()
logger = structlog.get_logger()

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Resume ingestion and candidate matching backend",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

# Add middleware
app.add_middleware(UnhandledErrorMiddleware)
app.add_middleware(RequestContextMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ATSException rendering
@app.exception_handler(ATSException)
async def ats_exception_handler(request: Request, exc: ATSException):
    """Render application errors with their HTTP status"""
    if exc.status_code >= 500:
        logger.warning("request_dependency_failed", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


# Include routers
app.include_router(resumes_router)
app.include_router(jobs_router)
app.include_router(candidates_router)
app.include_router(matching_router)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create tables; the API still starts when the database is not reachable yet"""
    logger.info("application_starting", version=settings.APP_VERSION)
    # Initialize database
    try:
        init_db()
        logger.info("database_initialized")
    except Exception as e:
        logger.error("database_init_failed", error=str(e))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )

