from typing import Any, Dict, List, Optional

from email_service.core.config import settings
from email_service.models.platform_setting import PlatformSetting
from .base_service import BaseService

CACHE_PREFIX = "settings:"


class SettingsService(BaseService):
    """
    Read-through access to platform settings.

    Values are cached in Redis under ``settings:<key>``. The cache is an
    optimisation only: cache errors are logged and the database is used
    directly, while database errors propagate to the caller.
    """

    async def get_setting(self, key: str, default: Any = None) -> Any:
        cached = await self._get_cached(key)
        if cached is not None:
            return cached

        try:
            setting = await self.settings_repo.get_by_key(key)
        except Exception as e:
            self.logger.error(f"Error loading setting {key}: {e}")
            raise

        if setting is None:
            return default

        await self._set_cached(key, setting.value)
        return setting.value

    async def get_settings(self, keys: List[str]) -> Dict[str, Any]:
        """Return the values of the requested keys that exist."""
        rows = await self.settings_repo.get_by_keys(keys)
        values = {row.key: row.value for row in rows}
        for key, value in values.items():
            await self._set_cached(key, value)
        return values

    async def get_settings_by_category(self, category: str) -> List[PlatformSetting]:
        return await self.settings_repo.get_by_category(category)

    async def update_setting(
        self,
        key: str,
        value: Any,
        label: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PlatformSetting:
        """Persist a new value and drop the cached copy."""
        defaults = {k: v for k, v in {"label": label, "description": description}.items() if v is not None}
        try:
            setting = await self.settings_repo.set_value(key, value, defaults=defaults)
            for field, field_value in defaults.items():
                setattr(setting, field, field_value)
            await self.commit()
            await self.session.refresh(setting)
        except Exception as e:
            self.logger.error(f"Error updating setting {key}: {e}")
            raise

        await self.invalidate(key)
        self.logger.info("Setting updated", key=key)
        return setting

    async def invalidate(self, key: str):
        try:
            await self.redis.delete(f"{CACHE_PREFIX}{key}")
        except Exception as e:
            self.logger.warning(f"Failed to invalidate cached setting {key}: {e}")

    async def _get_cached(self, key: str) -> Any:
        try:
            raw = await self.redis.get_json(f"{CACHE_PREFIX}{key}")
        except Exception as e:
            self.logger.warning(f"Settings cache read failed for {key}: {e}")
            return None
        return raw

    async def _set_cached(self, key: str, value: Any):
        try:
            await self.redis.set_json(
                f"{CACHE_PREFIX}{key}", value, ttl_seconds=settings.SETTINGS_CACHE_TTL_SECONDS
            )
        except Exception as e:
            self.logger.warning(f"Settings cache write failed for {key}: {e}")
