import logging

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from ledger_app.config import get_settings, Settings
from ledger_app.db.session import get_db
from ledger_app.api.v1.endpoints import journal, ledger

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Double-entry journal posting, general ledger and trial balance",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(journal.router, prefix="/api/v1")
app.include_router(ledger.router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint with database connectivity test."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "components": {
            "api": "healthy",
            "database": db_status,
        },
        "version": settings.app_version,
    }


@app.get("/config")
async def get_config(settings: Settings = Depends(get_settings)):
    """Get application configuration (non-sensitive values)."""
    return {
        "app_name": settings.app_name,
        "app_version": settings.app_version,
        "app_env": settings.app_env,
        "currencies": {
            "base": settings.base_currency,
            "default": settings.default_currency,
        },
        "posting": {
            "balance_tolerance": str(settings.balance_tolerance),
            "balance_tolerance_mode": settings.balance_tolerance_mode,
            "max_retries": settings.posting_max_retries,
            "statement_timeout_ms": settings.posting_statement_timeout_ms,
            "lock_timeout_ms": settings.posting_lock_timeout_ms,
        },
        "entry_number_prefix": settings.entry_number_prefix,
    }
