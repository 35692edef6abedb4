from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from eventboard.api.errors import request_validation_handler, service_error_handler
from eventboard.api.v1.router import router as v1_router
from eventboard.auth.roles import seed_default_roles
from eventboard.core.config import settings
from eventboard.core.logging import configure_logging
from eventboard.db import SessionLocal, engine
from eventboard.middleware.rate_limit import RateLimitMiddleware
from eventboard.middleware.request_id import RequestIdMiddleware
from eventboard.middleware.security_headers import SecurityHeadersMiddleware
from eventboard.models import Base
from eventboard.redis_client import redis_status
from eventboard.services.exceptions import ServiceError

configure_logging()

logger = structlog.get_logger()


def bootstrap() -> None:
    """Create tables on SQLite (no migrations there) and seed the default roles."""
    if engine.dialect.name == "sqlite":
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_default_roles(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    bootstrap()
    logger.info("startup_complete", env=settings.env)
    yield


app = FastAPI(title="eventboard API", lifespan=lifespan)

# Starlette runs the LAST added middleware FIRST (outermost).
# RequestId + SecurityHeaders wrap everything, including CORS preflight and 429s;
# RateLimit sits closest to the app.
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(ServiceError, service_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)

Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/")
def root():
    return {"name": "eventboard API", "status": "ok"}


@app.get("/health")
def health():
    # Redis outages only switch throttling off
    return {"status": "ok", "redis": redis_status()}


app.include_router(v1_router, prefix="/v1")
