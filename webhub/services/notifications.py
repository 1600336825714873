"""
Notification Fan-out

Pull-model notifications: domain events insert rows, recipients poll them.
"""

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.config import get_settings
from webhub.database.models import Notification, generate_id, utcnow
from webhub.errors import AuthorizationError, NotFoundError

logger = structlog.get_logger(__name__)
settings = get_settings()

NEW_REVIEW = "new_review"


async def notify(
    session: AsyncSession,
    recipient_id: str,
    type: str,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> Notification:
    """Insert an unread notification for ``recipient_id``."""
    notification = Notification(
        id=generate_id("notif"),
        user_id=recipient_id,
        type=type,
        title=title,
        message=message,
        data=data,
        read=False,
        created_at=utcnow(),
    )
    session.add(notification)
    await session.flush()

    logger.info("Notification created", notification_id=notification.id, user_id=recipient_id, type=type)
    return notification


async def notify_new_review(
    session: AsyncSession,
    owner_id: str,
    reviewer_id: str,
    reviewer_name: Optional[str],
    item_id: str,
    item_name: str,
    review_id: str,
    rating: int,
) -> Optional[Notification]:
    """Tell an item owner about a new review; owners reviewing themselves get nothing."""
    if owner_id == reviewer_id:
        return None

    return await notify(
        session,
        owner_id,
        NEW_REVIEW,
        "New review on your webapp",
        f'{reviewer_name or "Someone"} gave {rating} stars to "{item_name}"',
        {"webappId": item_id, "reviewId": review_id, "rating": rating},
    )


async def list_notifications(
    session: AsyncSession,
    user_id: str,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Newest-first page of a user's notifications.

    ``unread_count`` counts unread rows on the returned page only, so a user
    with more unread notifications than ``limit`` sees at most ``limit``.
    """
    limit = limit or settings.reputation.notifications_limit
    result = await session.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    notifications: List[Notification] = list(result.scalars().all())

    return {
        "notifications": notifications,
        "unread_count": sum(1 for n in notifications if not n.read),
    }


async def _owned_notification(session: AsyncSession, notification_id: str, user_id: str) -> Notification:
    notification = await session.get(Notification, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    if notification.user_id != user_id:
        raise AuthorizationError("Unauthorized")
    return notification


async def mark_read(session: AsyncSession, notification_id: str, user_id: str) -> Notification:
    """Flip ``read`` to true; marking an already-read notification is a no-op."""
    notification = await _owned_notification(session, notification_id, user_id)
    if not notification.read:
        notification.read = True
        await session.flush()
    return notification


async def mark_all_read(session: AsyncSession, user_id: str) -> int:
    """Mark every unread notification of ``user_id`` read; returns how many flipped."""
    result = await session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    logger.info("Notifications marked read", user_id=user_id, count=result.rowcount)
    return result.rowcount


async def delete_notification(session: AsyncSession, notification_id: str, user_id: str) -> None:
    notification = await _owned_notification(session, notification_id, user_id)
    await session.delete(notification)
    await session.flush()
    logger.info("Notification deleted", notification_id=notification_id, user_id=user_id)
