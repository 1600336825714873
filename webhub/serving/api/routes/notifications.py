"""
Notification Endpoints

Polling API over the caller's notifications.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.database.connection import get_db_dependency
from webhub.security import get_current_user_id
from webhub.services import notifications

router = APIRouter()


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    title: str
    message: str
    data: Optional[Any] = None
    read: bool
    created_at: datetime


@router.get("/notifications")
async def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """
    Newest-first notifications.

    ``unread_count`` covers the returned page only.
    """
    page = await notifications.list_notifications(db, user_id, limit)
    return {
        "success": True,
        "notifications": [
            NotificationOut.model_validate(n).model_dump(mode="json") for n in page["notifications"]
        ],
        "unread_count": page["unread_count"],
    }


@router.post("/notifications/read-all")
async def mark_all_read(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    updated = await notifications.mark_all_read(db, user_id)
    return {"success": True, "updated": updated}


@router.post("/notifications/{notification_id}/read")
async def mark_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    await notifications.mark_read(db, notification_id, user_id)
    return {"success": True}


@router.delete("/notifications/{notification_id}")
async def delete_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    await notifications.delete_notification(db, notification_id, user_id)
    return {"success": True}
