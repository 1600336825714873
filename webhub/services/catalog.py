"""
Catalog Service

Item lifecycle (submit, edit, delete), listing and detail reads, version
history, popular tags and site-wide stats.

The trust score is computed here once, at submission, and never again.
"""

from collections import Counter
from typing import Any, Dict, List, Mapping, Optional

import structlog
from sqlalchemy import Text, cast, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.config import get_settings
from webhub.database.models import (
    CatalogItem,
    ItemCategory,
    ItemStatus,
    ItemVersion,
    Review,
    User,
    generate_id,
    utcnow,
)
from webhub.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from webhub.quality.trust import calculate_trust_score, decide_status
from webhub.quality.validators import VALID_CATEGORIES, parse_tags, sanitize_string, validate_submission
from webhub.security import verify_password
from webhub.services.counters import record_view, require_item

logger = structlog.get_logger(__name__)
settings = get_settings()

SORT_OPTIONS = ("rating", "new", "trending")

SUBMISSION_FIELDS = (
    "name",
    "developer",
    "description_short",
    "description_long",
    "url",
    "github_url",
    "video_url",
    "image_url",
    "category",
    "tags",
)


def _clean_submission(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Sanitized copy of the submission fields; optional links become None when blank."""
    return {
        "name": sanitize_string(data.get("name")),
        "developer": sanitize_string(data.get("developer")),
        "description_short": sanitize_string(data.get("description_short")),
        "description_long": sanitize_string(data.get("description_long")),
        "url": sanitize_string(data.get("url")),
        "github_url": sanitize_string(data.get("github_url")) or None,
        "video_url": sanitize_string(data.get("video_url")) or None,
        "image_url": sanitize_string(data.get("image_url")) or None,
        "category": data.get("category"),
        "tags": data.get("tags"),
    }


def _validate(clean: Mapping[str, Any]) -> None:
    result = validate_submission(clean)
    if not result.valid:
        raise ValidationError(result.errors)


async def _ensure_url_free(session: AsyncSession, url: str, exclude_id: Optional[str] = None) -> None:
    query = select(CatalogItem.id).where(CatalogItem.url == url)
    if exclude_id:
        query = query.where(CatalogItem.id != exclude_id)
    if await session.scalar(query) is not None:
        raise ConflictError("A webapp with this URL already exists")


async def _owned_item(session: AsyncSession, item_id: str, user_id: str) -> CatalogItem:
    item = await session.get(CatalogItem, item_id)
    if item is None:
        raise NotFoundError("Webapp not found")
    if item.creator_id != user_id:
        raise AuthorizationError("Unauthorized")
    return item


# =============================================================================
# LIFECYCLE
# =============================================================================

async def create_item(session: AsyncSession, data: Mapping[str, Any], user_id: str) -> CatalogItem:
    """
    Submit a new catalog item.

    Validates, scores and inserts the item. Items scoring below the approval
    threshold are stored as ``pending_review``.

    Raises:
        ValidationError: Any field check failed (all messages reported)
        NotFoundError: Submitting user does not exist
        ConflictError: Another item already uses this URL
    """
    clean = _clean_submission(data)
    _validate(clean)

    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    await _ensure_url_free(session, clean["url"])

    tags = parse_tags(clean["tags"])
    trust_score = calculate_trust_score(clean, user)
    status = decide_status(trust_score, settings.reputation.approval_threshold)
    now = utcnow()

    item = CatalogItem(
        id=generate_id("webapp"),
        creator_id=user_id,
        name=clean["name"],
        developer=(clean["developer"] or user.name)[:100],
        description_short=clean["description_short"],
        description_long=clean["description_long"] or None,
        url=clean["url"],
        github_url=clean["github_url"],
        video_url=clean["video_url"],
        image_url=clean["image_url"],
        category=ItemCategory(clean["category"]),
        tags=tags,
        status=status,
        trust_score=trust_score,
        created_at=now,
        updated_at=now,
    )
    session.add(item)
    try:
        await session.flush()
    except IntegrityError as e:
        raise ConflictError("A webapp with this URL already exists") from e

    logger.info(
        "Item created",
        item_id=item.id,
        creator_id=user_id,
        status=status.value,
        trust_score=trust_score,
    )
    return item


async def update_item(
    session: AsyncSession,
    item_id: str,
    data: Mapping[str, Any],
    user_id: str,
) -> CatalogItem:
    """
    Owner edit of an item's descriptive fields.

    Supplied fields replace the stored ones and the merged record is validated
    as a whole. Trust score, status and counters are left alone. When both
    ``version`` and ``changelog`` are supplied a version entry is appended.
    """
    item = await _owned_item(session, item_id, user_id)

    merged: Dict[str, Any] = {
        "name": item.name,
        "developer": item.developer,
        "description_short": item.description_short,
        "description_long": item.description_long,
        "url": item.url,
        "github_url": item.github_url,
        "video_url": item.video_url,
        "image_url": item.image_url,
        "category": item.category.value,
        "tags": item.tags,
    }
    merged.update({k: v for k, v in data.items() if k in SUBMISSION_FIELDS})

    clean = _clean_submission(merged)
    _validate(clean)
    if clean["url"] != item.url:
        await _ensure_url_free(session, clean["url"], exclude_id=item_id)

    item.name = clean["name"]
    item.developer = (clean["developer"] or item.developer)[:100]
    item.description_short = clean["description_short"]
    item.description_long = clean["description_long"] or None
    item.url = clean["url"]
    item.github_url = clean["github_url"]
    item.video_url = clean["video_url"]
    item.image_url = clean["image_url"]
    item.category = ItemCategory(clean["category"])
    item.tags = parse_tags(clean["tags"])
    item.updated_at = utcnow()

    version = sanitize_string(data.get("version"))
    changelog = sanitize_string(data.get("changelog"))
    if version and changelog:
        session.add(ItemVersion(
            id=generate_id("version"),
            item_id=item_id,
            version=version[:50],
            changelog=changelog,
            created_at=utcnow(),
        ))

    try:
        await session.flush()
    except IntegrityError as e:
        raise ConflictError("A webapp with this URL already exists") from e

    logger.info("Item updated", item_id=item_id, version=version or None)
    return item


async def delete_item(session: AsyncSession, item_id: str, user_id: str, password: Optional[str]) -> None:
    """
    Owner delete, confirmed by the owner's password.

    Raises:
        NotFoundError: Unknown item
        AuthorizationError: Caller is not the owner
        AuthenticationError: Password does not match
    """
    item = await _owned_item(session, item_id, user_id)
    owner = await session.get(User, user_id)
    if owner is None or not verify_password(password or "", owner.password_hash):
        raise AuthenticationError("Invalid password")

    await session.delete(item)
    await session.flush()
    logger.info("Item deleted", item_id=item_id, user_id=user_id)


# =============================================================================
# READS
# =============================================================================

async def list_items(
    session: AsyncSession,
    category: Optional[str] = None,
    trending: bool = False,
    new: bool = False,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[CatalogItem]:
    """
    Approved items matching the filters.

    Sort:
        rating:   avg_rating desc, then reviews_count desc
        new:      created_at desc
        trending: views_count desc, then clicks_count desc
        default:  created_at desc
    """
    query = select(CatalogItem).where(CatalogItem.status == ItemStatus.APPROVED)

    if category and category != "all":
        if category not in VALID_CATEGORIES:
            raise ValidationError(["Invalid category"])
        query = query.where(CatalogItem.category == ItemCategory(category))
    if trending:
        query = query.where(CatalogItem.is_trending.is_(True))
    if new:
        query = query.where(CatalogItem.is_new.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            CatalogItem.name.ilike(pattern),
            CatalogItem.description_short.ilike(pattern),
            cast(CatalogItem.tags, Text).ilike(pattern),
        ))

    if sort == "rating":
        query = query.order_by(CatalogItem.avg_rating.desc(), CatalogItem.reviews_count.desc())
    elif sort == "trending":
        query = query.order_by(CatalogItem.views_count.desc(), CatalogItem.clicks_count.desc())
    else:
        query = query.order_by(CatalogItem.created_at.desc())
    query = query.order_by(CatalogItem.id.desc())

    limit = max(1, min(limit or settings.reputation.listing_limit, settings.reputation.listing_max_limit))
    result = await session.execute(query.limit(limit))
    return list(result.scalars().all())


async def list_reviews(session: AsyncSession, item_id: str) -> List[Dict[str, Any]]:
    """An item's reviews with the reviewer's name, newest first."""
    result = await session.execute(
        select(Review, User.name.label("user_name"))
        .outerjoin(User, User.id == Review.user_id)
        .where(Review.item_id == item_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
    )
    return [
        {
            "id": review.id,
            "webapp_id": review.item_id,
            "user_id": review.user_id,
            "user_name": user_name,
            "rating": review.rating,
            "comment": review.comment,
            "helpful_count": review.helpful_count,
            "not_helpful_count": review.not_helpful_count,
            "created_at": review.created_at,
        }
        for review, user_name in result.all()
    ]


async def get_item(
    session: AsyncSession,
    item_id: str,
    viewer_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Item detail with its reviews.

    When the viewer is identified a view is recorded. View tracking runs in a
    SAVEPOINT and its failures are logged and dropped; the read still succeeds.
    """
    await require_item(session, item_id)

    if viewer_id:
        try:
            async with session.begin_nested():
                await record_view(session, item_id, viewer_id)
        except SQLAlchemyError as e:
            logger.warning(
                "View tracking failed",
                item_id=item_id,
                viewer_id=viewer_id,
                error=str(e),
                error_type=type(e).__name__,
            )

    item = await session.scalar(
        select(CatalogItem)
        .where(CatalogItem.id == item_id)
        .execution_options(populate_existing=True)
    )
    return {"webapp": item, "reviews": await list_reviews(session, item_id)}


async def list_user_items(session: AsyncSession, user_id: str) -> List[CatalogItem]:
    """Every item a user submitted, including pending ones, newest first."""
    result = await session.execute(
        select(CatalogItem)
        .where(CatalogItem.creator_id == user_id)
        .order_by(CatalogItem.created_at.desc(), CatalogItem.id.desc())
    )
    return list(result.scalars().all())


async def list_versions(session: AsyncSession, item_id: str) -> List[ItemVersion]:
    await require_item(session, item_id)
    result = await session.execute(
        select(ItemVersion)
        .where(ItemVersion.item_id == item_id)
        .order_by(ItemVersion.created_at.desc(), ItemVersion.id.desc())
    )
    return list(result.scalars().all())


async def popular_tags(session: AsyncSession, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Most used tags across approved items; ties break alphabetically."""
    result = await session.execute(
        select(CatalogItem.tags).where(CatalogItem.status == ItemStatus.APPROVED)
    )
    counts: Counter = Counter()
    for tags in result.scalars():
        counts.update(tags or [])

    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [
        {"name": name, "count": count}
        for name, count in ranked[:limit or settings.reputation.popular_tags_limit]
    ]


async def stats(session: AsyncSession) -> Dict[str, int]:
    """Site-wide totals: approved items, users, reviews."""
    webapps_count = await session.scalar(
        select(func.count()).select_from(CatalogItem).where(CatalogItem.status == ItemStatus.APPROVED)
    )
    users_count = await session.scalar(select(func.count()).select_from(User))
    reviews_count = await session.scalar(select(func.count()).select_from(Review))

    return {
        "webapps_count": int(webapps_count or 0),
        "users_count": int(users_count or 0),
        "reviews_count": int(reviews_count or 0),
    }
