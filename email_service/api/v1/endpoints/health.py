from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from email_service.api.deps import get_email_queue
from email_service.core.config import settings
from email_service.core.database import get_async_session
from email_service.core.redis_client import redis_client
from email_service.schemas.email import EmailQueueStatus
from email_service.services.email_queue import EmailQueue

router = APIRouter()


@router.get("/")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "email-service",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT
    }


@router.get("/queue", response_model=EmailQueueStatus)
async def queue_status(queue: EmailQueue = Depends(get_email_queue)):
    """Current email queue length and whether it is processing."""
    return queue.get_status()


@router.get("/detailed")
async def detailed_health_check(
    queue: EmailQueue = Depends(get_email_queue),
    session: AsyncSession = Depends(get_async_session)
):
    """Detailed health check including dependencies."""
    health_status = {
        "status": "healthy",
        "service": "email-service",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "checks": {}
    }

    # Database check
    try:
        await session.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {"status": "healthy", "message": "Database connection OK"}
    except Exception as e:
        health_status["checks"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"

    # Redis check
    try:
        if not redis_client.client:
            await redis_client.connect()
        await redis_client.client.ping()
        health_status["checks"]["redis"] = {"status": "healthy", "message": "Redis connection OK"}
    except Exception as e:
        health_status["checks"]["redis"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"

    # SMTP is optional; unconfigured means emails are logged and dropped
    health_status["checks"]["smtp"] = {
        "status": "healthy" if queue.transport.is_configured else "degraded",
        "configured": queue.transport.is_configured,
    }

    health_status["checks"]["queue"] = {"status": "healthy", **queue.get_status().model_dump()}

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
