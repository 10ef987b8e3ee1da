import logging
from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from early_access.api.early_access import router as early_access_router
from early_access.core.config import settings
from early_access.core.database import engine, get_db, ping_database
from early_access.models import Base
from early_access.schemas.early_access import HealthResponse

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
    ],
)

# Completely disable SQLAlchemy logging
logging.getLogger("sqlalchemy").setLevel(logging.CRITICAL)
logging.getLogger("sqlalchemy.engine").setLevel(logging.CRITICAL)
logging.getLogger("sqlalchemy.pool").setLevel(logging.CRITICAL)

logger = logging.getLogger(__name__)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        send_default_pii=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting up {settings.PROJECT_NAME} early access backend...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.database_host}")
    logger.info(f"Frontend URL: {settings.FRONTEND_URL}")
    if settings.uses_default_db_password():
        logger.warning("Using default DB password; set DATABASE_URL for production")
    if not settings.smtp_configured:
        logger.info("SMTP credentials not configured, email service disabled")

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        if settings.is_development:
            raise
        logger.info("Continuing without migrations in production")

    yield

    logger.info("Shutting down early access backend...")
    await engine.dispose()


app = FastAPI(
    title=f"{settings.PROJECT_NAME} Early Access API",
    version=settings.VERSION,
    lifespan=lifespan,
)

# configure logfire only if token exists and not using fake token
if settings.LOGFIRE_TOKEN and settings.LOGFIRE_TOKEN != "fake-token-for-testing":
    try:
        logfire.configure(token=settings.LOGFIRE_TOKEN)
        logfire.instrument_fastapi(app, excluded_urls="/health,/api/health")
        logfire.instrument_sqlalchemy(engine)
    except Exception as e:
        logger.warning(f"Failed to configure Logfire: {e}")


# Security middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    expose_headers=["Content-Length"],
    max_age=12 * 60 * 60,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected malformed request to {request.url.path}")
    return JSONResponse(status_code=400, content={"detail": "Invalid request"})


app.include_router(early_access_router)


@app.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    if await ping_database(db):
        return HealthResponse(status="healthy", database="connected", version=settings.VERSION)
    return HealthResponse(status="degraded", database="error", version=settings.VERSION)


@app.get("/api/health", include_in_schema=False)
async def api_health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Server starting on port {settings.PORT}")
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
