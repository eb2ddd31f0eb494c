import hmac
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from email_service.core.config import settings

# Security configuration
security = HTTPBearer(auto_error=False)


def _secret_matches(credentials: Optional[HTTPAuthorizationCredentials], secret: str) -> bool:
    if credentials is None:
        return False
    return hmac.compare_digest(credentials.credentials.encode(), secret.encode())


async def verify_notification_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """
    Require ``Authorization: Bearer <NOTIFICATION_API_SECRET>`` when a secret
    is configured. Without a secret the endpoints are open (local development).
    """
    secret = settings.NOTIFICATION_API_SECRET
    if not secret:
        return
    if not _secret_matches(credentials, secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def verify_test_email_access(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """The diagnostic send endpoint is only locked down in production."""
    if settings.ENVIRONMENT != "production":
        return
    await verify_notification_secret(credentials)
