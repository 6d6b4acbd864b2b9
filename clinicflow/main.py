import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy import inspect, text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from clinicflow import models  # noqa: F401  registers tables on Base.metadata
from clinicflow.api.v1.api import api_router
from clinicflow.core.config import settings
from clinicflow.core.errors import ClinicFlowError, ValidationError
from clinicflow.db.base import Base
from clinicflow.db.session import database, get_db
from clinicflow.middleware.request_logging import RequestLoggingMiddleware

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


def check_tables() -> None:
    inspector = inspect(database.engine)
    existing_tables = set(inspector.get_table_names())
    missing_tables = sorted(set(Base.metadata.tables) - existing_tables)
    if missing_tables:
        logger.warning(f"Missing database tables: {missing_tables}")
        logger.warning("Run `alembic upgrade head` or `python scripts/setup_database.py` before serving traffic")
    else:
        logger.info("All required database tables exist")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT.value})...")

    owns_engine = not database.is_initialized
    if owns_engine:
        database.init()

    try:
        check_tables()
    except Exception as e:
        logger.warning(f"Could not check database tables: {e}")

    yield

    logger.info(f"Shutting down {settings.PROJECT_NAME}...")
    if owns_engine:
        database.dispose()


def _validation_message(exc: RequestValidationError) -> tuple:
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        errors.append({"field": field, "message": err.get("msg", "Invalid value")})
    if not errors:
        return "Invalid request", errors
    first = errors[0]
    message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
    return message, errors


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ClinicFlowError)
    async def clinicflow_exception_handler(request: Request, exc: ClinicFlowError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code}: {exc.message} - {request.method} {request.url.path}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        message, errors = _validation_message(exc)
        error = ValidationError(message, details={"errors": errors})
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "code": "http_error",
                "message": exc.detail,
                "status_code": exc.status_code,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled exceptions"""
        logger.exception(f"Unhandled exception: {exc} - {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "code": "internal_error",
                "message": "Internal server error",
                "status_code": 500,
            },
        )


def create_application() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="ClinicFlow - appointment scheduling and patient records for clinics",
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_application()


@app.get("/", include_in_schema=False)
async def root():
    return RedirectResponse(url=f"{settings.API_V1_STR}/docs")


@app.get("/health", tags=["Health Check"])
def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "version": settings.VERSION,
        "project": settings.PROJECT_NAME,
        "environment": settings.ENVIRONMENT.value,
        "database": db_status,
    }


if __name__ == "__main__":
    uvicorn.run(
        "clinicflow.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower(),
    )
