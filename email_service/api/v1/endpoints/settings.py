from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from email_service.core.auth import verify_notification_secret
from email_service.core.database import get_async_session
from email_service.schemas.settings import SettingListResponse, SettingResponse, SettingUpdateRequest
from email_service.services.settings_service import SettingsService

router = APIRouter(dependencies=[Depends(verify_notification_secret)])


@router.get("/", response_model=SettingListResponse)
async def list_settings(
    category: Optional[str] = Query(None, description="e.g. email, notifications"),
    session: AsyncSession = Depends(get_async_session)
):
    """
    List platform settings.

    - **category**: Only return settings in this category
    """
    service = SettingsService(session)
    if category:
        rows = await service.get_settings_by_category(category)
    else:
        rows = await service.settings_repo.get_all(order_by="key", limit=500)
    return SettingListResponse(items=[SettingResponse.model_validate(row) for row in rows])


@router.get("/{key}", response_model=SettingResponse)
async def get_setting(
    key: str,
    session: AsyncSession = Depends(get_async_session)
):
    service = SettingsService(session)
    setting = await service.settings_repo.get_by_key(key)
    if not setting:
        raise HTTPException(status_code=404, detail=f"Setting '{key}' not found")
    return setting


@router.put("/{key}", response_model=SettingResponse)
async def update_setting(
    key: str,
    request: SettingUpdateRequest,
    session: AsyncSession = Depends(get_async_session)
):
    """
    Create or update a setting. Changes to email switches apply to the next
    enqueued email once the cached value is dropped.
    """
    service = SettingsService(session)
    try:
        return await service.update_setting(key, request.value, label=request.label, description=request.description)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update setting: {e}")
