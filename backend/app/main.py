import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings
from app.core.database import engine, Base, SessionLocal
from app.core.exceptions import AppError, BadRequestAlertError
from app.core.scheduler import start_scheduler, stop_scheduler
from app.api.routes import auth, users
from app.models import authority, user  # noqa: F401 - register tables on Base
from app.services.user_service import user_service
from app.utils.header_utils import create_failure_alert

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def init_database():
    """Create tables if they don't exist and seed authorities and the admin account"""
    # In production, use migrations (Alembic) instead of create_all
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user_service.seed_defaults(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage app lifecycle events.

    Startup: Create schema, seed defaults, start background scheduler
    Shutdown: Stop background scheduler
    """
    init_database()
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="User Management API",
    description="User and authority administration",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware - allows frontend to make requests to backend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Location", "Link", "X-Total-Count",
                    f"X-{settings.APP_NAME}-alert", f"X-{settings.APP_NAME}-error",
                    f"X-{settings.APP_NAME}-params"],
)


@app.exception_handler(BadRequestAlertError)
async def bad_request_alert_handler(request: Request, exc: BadRequestAlertError):
    """400 with the error key in the body and in the failure alert headers"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_key": exc.error_key},
        headers=create_failure_alert(exc.entity_name, exc.error_key),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    # Store failures are not retried; they surface to the caller as 500
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Database error occurred"})


# Register API route modules
# All routes are prefixed with /api for consistency
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {"message": "User Management API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """Health check endpoint - used by monitoring/deployment tools"""
    return {"status": "healthy"}
