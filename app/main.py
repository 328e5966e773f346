"""
Hackathon Portal - Main Application

FastAPI backend with:
- PostgreSQL for all state (users, applications, review ledger, settings)
- Review assignment: batch rebalance and reviewer pull-next
- JWT authentication (tokens minted by the identity provider)

Run: uvicorn app.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.errors import TransientStoreError, CorruptSettingError
from app.db import postgres
from app.db.postgres import check_database_connection
from app.db.schema import init_schema

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Hackathon Portal",
    description="""
    Application intake and review for a hackathon.

    ## Features
    - **Applicants**: Draft, update and submit an application
    - **Admins**: Browse applications, pull the next one to review, vote
    - **Super Admins**: Rebalance reviews, set the review quota, manage
      reviewers and short-answer questions, record final decisions
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.exception_handler(TransientStoreError)
async def transient_store_error_handler(request: Request, exc: TransientStoreError):
    logger.error(f"{request.method} {request.url.path}: {exc.message} ({exc.__cause__})")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(CorruptSettingError)
async def corrupt_setting_error_handler(request: Request, exc: CorruptSettingError):
    logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create tables and triggers if missing."""
    if settings.auto_create_schema:
        init_schema(postgres.engine)


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    connected = check_database_connection()
    return {
        "status": "healthy" if connected else "degraded",
        "postgres": "connected" if connected else "disconnected"
    }
