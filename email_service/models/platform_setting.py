import uuid
from typing import Any, Optional
from sqlalchemy import Column, String, Boolean, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped

from .base import BaseModel


class PlatformSetting(BaseModel):
    """Admin-controlled platform setting, stored as a JSON value per key."""

    __tablename__ = "platform_settings"

    id: Mapped[uuid.UUID] = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    key: Mapped[str] = Column(String(200), unique=True, nullable=False, index=True)
    value: Mapped[Any] = Column(JSONB, nullable=False)
    category: Mapped[str] = Column(String(50), nullable=False, index=True)
    label: Mapped[str] = Column(String(200), nullable=False)
    description: Mapped[Optional[str]] = Column(Text, nullable=True)
    data_type: Mapped[str] = Column(String(20), nullable=False)  # boolean, number, string, json, array
    is_public: Mapped[bool] = Column(Boolean, default=False, nullable=False)
    requires_restart: Mapped[bool] = Column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<PlatformSetting(key='{self.key}', value={self.value!r})>"
