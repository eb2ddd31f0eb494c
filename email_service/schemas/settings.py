from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, Field

from .common import BaseResponse


class SettingResponse(BaseModel):
    key: str
    value: Any
    category: str
    label: str
    description: Optional[str] = None
    data_type: str
    is_public: bool = False
    requires_restart: bool = False
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SettingUpdateRequest(BaseModel):
    value: Any = Field(..., description="New JSON value")
    label: Optional[str] = None
    description: Optional[str] = None


class SettingListResponse(BaseResponse):
    items: List[SettingResponse]
