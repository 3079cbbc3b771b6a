"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from planner.core.config import settings
from planner.core.middleware import setup_middleware
from planner.core.exceptions import (
    AuthorizationError,
    EmptySourceWeekError,
    EventConflictError,
    PlanningError,
    ResourceNotFoundError,
    TransactionFailureError,
    ValidationError,
)
from planner.db.session import get_db

from planner.api.events import router as events_router
from planner.api.planning import router as planning_router
from planner.api.audit import router as audit_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("planner")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s", settings.APP_NAME)
    yield
    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description="Multi-team event planning with conflict detection and audit trail",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)


@app.exception_handler(ResourceNotFoundError)
async def not_found_handler(request: Request, exc: ResourceNotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(EventConflictError)
async def conflict_handler(request: Request, exc: EventConflictError):
    return JSONResponse(
        status_code=409,
        content=jsonable_encoder({
            "detail": exc.message,
            "conflicts": exc.conflicts,
        }),
    )


@app.exception_handler(EmptySourceWeekError)
async def empty_source_handler(request: Request, exc: EmptySourceWeekError):
    return JSONResponse(
        status_code=422,
        content={"detail": exc.message, "code": "empty_source_week"},
    )


@app.exception_handler(AuthorizationError)
async def authorization_handler(request: Request, exc: AuthorizationError):
    return JSONResponse(status_code=403, content={"detail": exc.message})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(TransactionFailureError)
async def transaction_failure_handler(request: Request, exc: TransactionFailureError):
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(PlanningError)
async def planning_error_handler(request: Request, exc: PlanningError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


# Register routers
app.include_router(events_router, prefix="/api")
app.include_router(planning_router, prefix="/api")
app.include_router(audit_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health(db: Session = Depends(get_db)):
    """Health check — database reachability."""
    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        logger.warning("Health check: database unreachable", exc_info=True)

    return {
        "database": "ok" if db_ok else "error",
        "status": "healthy" if db_ok else "degraded",
    }
