from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from app.config import settings
from app.database import init_db
from app.routers import auth, athletes, injuries, reports, recovery, functions
from app.storage import get_blob_store


# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    await init_db()
    await get_blob_store().ensure_bucket(settings.REPORTS_BUCKET)
    logger.info(f"{settings.APP_NAME} started")
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Athlete injury tracking with AI-generated recovery recommendations",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

# Include routers
app.include_router(auth.router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["Authentication"])
app.include_router(athletes.router, prefix=f"{settings.API_V1_PREFIX}/athletes", tags=["Athletes"])
app.include_router(injuries.router, prefix=f"{settings.API_V1_PREFIX}/injuries", tags=["Injuries"])
app.include_router(reports.router, prefix=f"{settings.API_V1_PREFIX}/reports", tags=["Medical Reports"])
app.include_router(recovery.router, prefix=f"{settings.API_V1_PREFIX}/recovery", tags=["Recovery"])
app.include_router(functions.router, prefix=f"{settings.API_V1_PREFIX}/functions", tags=["Functions"])


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": "1.0.0",
        "status": "healthy",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
