"""
HRMS Multi-Country Payroll - FastAPI Application Entry Point

This is the main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import init_db, close_db
from app.services.payroll_calculators.factory import PayrollCalculatorFactory
from app.utils.error_handling import setup_exception_handlers

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables in development and dispose the engine on shutdown."""
    logger.info(f"Starting {settings.app_name} ({settings.app_env})")
    logger.info(f"Database: {settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    logger.info(
        "Payroll calculators: "
        + ", ".join(c["code"] for c in PayrollCalculatorFactory.get_supported_countries())
    )
    if not settings.payroll_load_policy_table:
        logger.warning("Country policy table disabled; built-in rates only")

    # Migrations own the schema outside development
    if settings.is_development:
        await init_db()
        logger.info("Database tables initialized")

    yield

    await close_db()
    logger.info(f"{settings.app_name} stopped")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Multi-country payroll engine for India, the GCC states and Egypt",
    version="0.1.0",
    docs_url="/api/docs" if settings.is_development else None,
    redoc_url="/api/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)


# ===========================================
# API ROUTES
# ===========================================

@app.get("/api")
async def api_info():
    """API information endpoint."""
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "status": "running",
        "environment": settings.app_env,
        "api_docs": "/api/docs" if settings.is_development else "disabled",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# ===========================================
# INCLUDE ROUTERS
# ===========================================

from app.routers import payroll

# Multi-Country Payroll
app.include_router(payroll.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
