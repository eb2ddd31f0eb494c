import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from email_service.models.platform_setting import PlatformSetting
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SettingsRepository(BaseRepository[PlatformSetting]):
    """Repository for platform settings."""

    def __init__(self, session: AsyncSession):
        super().__init__(PlatformSetting, session)

    async def get_by_key(self, key: str) -> Optional[PlatformSetting]:
        return await self.get_by_field("key", key)

    async def get_by_keys(self, keys: List[str]) -> List[PlatformSetting]:
        """Fetch several settings in one query."""
        if not keys:
            return []
        try:
            query = select(PlatformSetting).where(PlatformSetting.key.in_(keys))
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Error getting settings {keys}: {e}")
            raise

    async def get_by_category(self, category: str) -> List[PlatformSetting]:
        return await self.get_all(filters={"category": category}, order_by="key", limit=500)

    async def set_value(self, key: str, value: Any, defaults: Optional[Dict[str, Any]] = None) -> PlatformSetting:
        """
        Update the value of an existing setting, or create it using `defaults`
        for the descriptive columns.
        """
        setting = await self.get_by_key(key)
        if setting is None:
            data = {
                "key": key,
                "value": value,
                "category": key.split(".", 1)[0],
                "label": key,
                "data_type": _infer_data_type(value),
            }
            data.update(defaults or {})
            return await self.create(data)

        setting.value = value
        self.session.add(setting)
        await self.session.flush()
        return setting


def _infer_data_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "json"
