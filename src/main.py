"""Tuition ledger API: student accounts, bank payments, receipts and certificates."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from src.core.auth.router import router as auth_router
from src.core.config import settings
from src.core.database import engine
from src.core.exceptions import AppException
from src.core.exceptions.handlers import (
    app_exception_handler,
    http_exception_handler,
    sqlalchemy_db_error_handler,
    validation_exception_handler,
)
from src.modules.payments.router import router as payments_router
from src.modules.students.router import portal_router
from src.modules.students.router import router as students_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # SQL echo is controlled by the engine, keep the logger quiet otherwise
    if not settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Tuition ledger API starting (env=%s, currency=%s)", settings.app_env, settings.currency
    )
    yield
    await engine.dispose()
    logger.info("Tuition ledger API stopped")


def create_app() -> FastAPI:
    """Application factory used by uvicorn and the test client."""
    configure_logging()

    # No interactive docs in production
    docs_enabled = not settings.is_production

    app = FastAPI(
        title="Tuition Ledger",
        description="Student tuition accounts, bank payment ledger, receipts and certificates",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["Content-Disposition", "X-Certificate-Reference", "Retry-After"],
    )

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_db_error_handler)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "env": settings.app_env}

    for router in (auth_router, students_router, portal_router, payments_router):
        app.include_router(router, prefix=API_PREFIX)

    return app


app = create_app()
