"""Sistema KG do Amor - donation and stock tracking API."""
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from .api import api_router
from .config import settings
from .db import Base, engine, get_db
from .error_handlers import (
    AppException,
    app_exception_handler,
    generic_exception_handler,
    ledger_exception_handler,
    sqlalchemy_exception_handler,
    validation_exception_handler,
)
from .ledger import LedgerError
from .logging_config import get_logger, setup_logging
from .middleware import RequestLoggingMiddleware, limiter, rate_limit_exceeded_handler

setup_logging(settings.log_level, settings.log_dir)
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # create tables if not exist
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.app_name} v{settings.app_version} started ({settings.app_env})")
    yield
    logger.info("Shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

app.state.limiter = limiter

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(LedgerError, ledger_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(api_router)


@app.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}


__all__ = ["app", "get_db"]
