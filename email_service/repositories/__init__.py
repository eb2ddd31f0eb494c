from .base_repository import BaseRepository
from .settings_repository import SettingsRepository

__all__ = [
    "BaseRepository",
    "SettingsRepository",
]
