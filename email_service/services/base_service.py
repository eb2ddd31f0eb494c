from abc import ABC
from sqlalchemy.ext.asyncio import AsyncSession

from email_service.core.logging import get_logger
from email_service.core.redis_client import redis_client
from email_service.repositories import SettingsRepository


class BaseService(ABC):
    """Base service class with common functionality."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.logger = get_logger(self.__class__.__name__)

        self.settings_repo = SettingsRepository(session)

        # Redis client for caching
        self.redis = redis_client

    async def commit(self):
        """Commit the current transaction."""
        try:
            await self.session.commit()
        except Exception as e:
            self.logger.error(f"Error committing transaction: {e}")
            await self.session.rollback()
            raise

    async def rollback(self):
        """Rollback the current transaction."""
        try:
            await self.session.rollback()
        except Exception as e:
            self.logger.error(f"Error rolling back transaction: {e}")
            raise
