"""
Collection Membership

User-curated item sets. Only the owner mutates a collection; private
collections are visible to the owner alone, public ones to anyone.
"""

from typing import Any, Dict, List, Mapping, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.config import get_settings
from webhub.database.dml import insert_ignore
from webhub.database.models import (
    CatalogItem,
    Collection,
    CollectionItem,
    User,
    generate_id,
    utcnow,
)
from webhub.errors import AuthorizationError, NotFoundError, ValidationError
from webhub.quality.validators import sanitize_string
from webhub.services.counters import require_item

logger = structlog.get_logger(__name__)
settings = get_settings()


def _items_count():
    return (
        select(func.count())
        .select_from(CollectionItem)
        .where(CollectionItem.collection_id == Collection.id)
        .correlate(Collection)
        .scalar_subquery()
        .label("items_count")
    )


def collection_to_dict(
    collection: Collection,
    items_count: Optional[int] = None,
    creator_name: Optional[str] = None,
) -> Dict[str, Any]:
    data = {
        "id": collection.id,
        "user_id": collection.user_id,
        "name": collection.name,
        "description": collection.description,
        "is_public": collection.is_public,
        "created_at": collection.created_at,
        "updated_at": collection.updated_at,
    }
    if items_count is not None:
        data["items_count"] = int(items_count)
    if creator_name is not None:
        data["creator_name"] = creator_name
    return data


async def _load(session: AsyncSession, collection_id: str) -> Collection:
    collection = await session.get(Collection, collection_id)
    if collection is None:
        raise NotFoundError("Collection not found")
    return collection


async def _owned(session: AsyncSession, collection_id: str, user_id: str) -> Collection:
    collection = await _load(session, collection_id)
    if collection.user_id != user_id:
        raise AuthorizationError("Unauthorized")
    return collection


async def _visible(session: AsyncSession, collection_id: str, viewer_id: Optional[str]) -> Collection:
    collection = await _load(session, collection_id)
    if not collection.is_public and collection.user_id != viewer_id:
        raise AuthorizationError("This collection is private")
    return collection


# =============================================================================
# LIFECYCLE
# =============================================================================

async def create_collection(
    session: AsyncSession,
    user_id: str,
    name: Any,
    description: Any = None,
    is_public: bool = False,
) -> Collection:
    clean_name = sanitize_string(name)[:100]
    if not clean_name:
        raise ValidationError(["Collection name is required"])

    now = utcnow()
    collection = Collection(
        id=generate_id("collection"),
        user_id=user_id,
        name=clean_name,
        description=sanitize_string(description) or None,
        is_public=bool(is_public),
        created_at=now,
        updated_at=now,
    )
    session.add(collection)
    await session.flush()

    logger.info("Collection created", collection_id=collection.id, user_id=user_id, is_public=collection.is_public)
    return collection


async def update_collection(
    session: AsyncSession,
    collection_id: str,
    data: Mapping[str, Any],
    user_id: str,
) -> Collection:
    """Owner edit of visibility, name and description; bumps ``updated_at``."""
    collection = await _owned(session, collection_id, user_id)

    if "name" in data and data["name"] is not None:
        clean_name = sanitize_string(data["name"])[:100]
        if not clean_name:
            raise ValidationError(["Collection name is required"])
        collection.name = clean_name
    if "description" in data:
        collection.description = sanitize_string(data["description"]) or None
    if "is_public" in data and data["is_public"] is not None:
        collection.is_public = bool(data["is_public"])

    collection.updated_at = utcnow()
    await session.flush()

    logger.info("Collection updated", collection_id=collection_id, is_public=collection.is_public)
    return collection


async def delete_collection(session: AsyncSession, collection_id: str, user_id: str) -> None:
    collection = await _owned(session, collection_id, user_id)
    await session.delete(collection)
    await session.flush()
    logger.info("Collection deleted", collection_id=collection_id, user_id=user_id)


# =============================================================================
# MEMBERSHIP
# =============================================================================

async def add_item(session: AsyncSession, collection_id: str, item_id: str, user_id: str) -> Collection:
    """
    Add an item to a collection.

    Adding an item that is already a member succeeds without a second row.
    """
    collection = await _owned(session, collection_id, user_id)
    await require_item(session, item_id)

    await session.execute(
        insert_ignore(session, CollectionItem, {
            "id": generate_id("item"),
            "collection_id": collection_id,
            "item_id": item_id,
            "added_at": utcnow(),
        })
    )
    collection.updated_at = utcnow()
    await session.flush()

    logger.info("Item added to collection", collection_id=collection_id, item_id=item_id)
    return collection


async def remove_item(session: AsyncSession, collection_id: str, item_id: str, user_id: str) -> Collection:
    collection = await _owned(session, collection_id, user_id)

    membership = await session.scalar(
        select(CollectionItem).where(
            CollectionItem.collection_id == collection_id,
            CollectionItem.item_id == item_id,
        )
    )
    if membership is not None:
        await session.delete(membership)
    collection.updated_at = utcnow()
    await session.flush()

    logger.info(
        "Item removed from collection",
        collection_id=collection_id,
        item_id=item_id,
        was_member=membership is not None,
    )
    return collection


# =============================================================================
# READS
# =============================================================================

async def get_collection(
    session: AsyncSession,
    collection_id: str,
    viewer_id: Optional[str] = None,
) -> Dict[str, Any]:
    collection = await _visible(session, collection_id, viewer_id)
    count = await session.scalar(
        select(func.count()).select_from(CollectionItem).where(CollectionItem.collection_id == collection_id)
    )
    return collection_to_dict(collection, items_count=count or 0)


async def list_collection_items(
    session: AsyncSession,
    collection_id: str,
    viewer_id: Optional[str] = None,
) -> List[CatalogItem]:
    """Member items, most recently added first."""
    await _visible(session, collection_id, viewer_id)
    result = await session.execute(
        select(CatalogItem)
        .join(CollectionItem, CollectionItem.item_id == CatalogItem.id)
        .where(CollectionItem.collection_id == collection_id)
        .order_by(CollectionItem.added_at.desc(), CollectionItem.id.desc())
    )
    return list(result.scalars().all())


async def list_user_collections(session: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
    """All of a user's collections, public and private, with item counts."""
    result = await session.execute(
        select(Collection, _items_count())
        .where(Collection.user_id == user_id)
        .order_by(Collection.updated_at.desc(), Collection.id.desc())
    )
    return [collection_to_dict(c, items_count=count) for c, count in result.all()]


async def list_public_collections(session: AsyncSession, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Most recently updated public collections with owner name and item count."""
    result = await session.execute(
        select(Collection, _items_count(), User.name.label("creator_name"))
        .outerjoin(User, User.id == Collection.user_id)
        .where(Collection.is_public.is_(True))
        .order_by(Collection.updated_at.desc(), Collection.id.desc())
        .limit(limit or settings.reputation.public_collections_limit)
    )
    return [
        collection_to_dict(c, items_count=count, creator_name=creator_name or "")
        for c, count, creator_name in result.all()
    ]
