from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from email_service.core.config import settings
from email_service.core.logging import setup_logging
from email_service.core.redis_client import redis_client
from email_service.core.database import db_manager
from email_service.api.v1.router import api_router
from email_service.services.dead_letter_service import DeadLetterService
from email_service.services.email_queue import EmailQueue
from email_service.services.email_settings import EmailSettingsLookup
from email_service.services.email_templates import EmailTemplateRenderer
from email_service.services.email_transport import SMTPTransport


# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


def build_email_queue() -> EmailQueue:
    """Wire the queue with the SMTP transport, templates and platform switches."""
    on_failure = None
    if settings.EMAIL_DEAD_LETTER_ENABLED:
        on_failure = DeadLetterService(redis_client).record_failure

    return EmailQueue.from_settings(
        transport=SMTPTransport.from_settings(),
        renderer=EmailTemplateRenderer(),
        settings_lookup=EmailSettingsLookup(redis=redis_client),
        on_failure=on_failure,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    # Startup
    try:
        await redis_client.connect()
        app.state.email_queue = build_email_queue()
        if not app.state.email_queue.transport.is_configured:
            logger.warning("SMTP is not configured; emails will be logged and dropped")
        logger.info("Email Service startup completed")
    except Exception as e:
        logger.error(f"Email Service startup failed: {e}")
        raise

    yield

    # Shutdown
    try:
        await app.state.email_queue.close()
        await redis_client.disconnect()
        await db_manager.close_connections()
        logger.info("Email Service shutdown completed")
    except Exception as e:
        logger.error(f"Email Service shutdown failed: {e}")


app = FastAPI(
    title=settings.APP_NAME,
    description="""
    **wagr Email Service**

    Accepts transactional email requests and delivers them in the background
    over SMTP with retries.

    ## Authentication

    When `NOTIFICATION_API_SECRET` is set, send it as `Authorization: Bearer <secret>`.

    ## Features

    - 📬 **Background queue** - Fire-and-forget sending with retry and backoff
    - 🧩 **Templates** - Branded HTML and plain text emails for every notification
    - ⚙️ **Platform switches** - Email can be disabled globally or per category
    - 🪦 **Dead letters** - Inspect and requeue emails that exhausted their retries
    """,
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix="/v1")


@app.get("/")
async def root():
    """Root endpoint with service information."""
    return {
        "service": settings.APP_NAME,
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "status": "running",
        "docs_url": "/docs",
        "health_check": "/v1/health",
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "details": str(exc) if settings.DEBUG else "An unexpected error occurred"
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """HTTP exception handler."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "status_code": exc.status_code
        },
        headers=getattr(exc, "headers", None),
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "email_service.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
