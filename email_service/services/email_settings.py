"""
Platform switches that gate outgoing email.

Admins can turn email off globally or per category from the settings table.
Missing keys mean "enabled", so a fresh database sends everything.
"""
from typing import Any, Callable, Dict, Optional

from email_service.core.database import AsyncSessionLocal
from email_service.core.redis_client import redis_client
from email_service.schemas.email import EmailType, normalize_email_type
from .settings_service import SettingsService

GLOBAL_EMAIL_SETTING = "notifications.enable_email"

# Types without an entry are only subject to the global switch
EMAIL_TYPE_SETTINGS: Dict[EmailType, str] = {
    EmailType.QUIZ_INVITATION: "email.enable_quiz_invitations",
    EmailType.WAGER_SETTLEMENT: "email.enable_wager_settlement",
    EmailType.WAGER_JOINED: "email.enable_wager_joined",
    EmailType.BALANCE_UPDATE: "email.enable_balance_updates",
    EmailType.WELCOME: "email.enable_welcome_emails",
    EmailType.QUIZ_SETTLEMENT: "email.enable_quiz_settlement",
}

_FALSE_STRINGS = {"false", "0", "off", "no"}


def as_enabled(value: Any, default: bool = True) -> bool:
    """Interpret a stored setting value as a boolean switch."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


class EmailSettingsLookup:
    """Answers whether email (or one email category) is currently enabled."""

    def __init__(self, session_factory: Callable = AsyncSessionLocal, redis=redis_client):
        self.session_factory = session_factory
        self.redis = redis

    async def _get_bool(self, key: str, default: bool = True) -> bool:
        async with self.session_factory() as session:
            service = SettingsService(session)
            service.redis = self.redis
            value = await service.get_setting(key, default)
        return as_enabled(value, default)

    async def is_email_enabled(self) -> bool:
        return await self._get_bool(GLOBAL_EMAIL_SETTING)

    async def is_type_enabled(self, email_type: Any) -> bool:
        key: Optional[str] = EMAIL_TYPE_SETTINGS.get(normalize_email_type(email_type))
        if key is None:
            return True
        return await self._get_bool(key)
