"""
Counter Aggregator

Keeps the denormalized aggregates on ``webapps`` and ``reviews`` equal to
COUNT/AVG over their event tables. Every recount is one statement:

    UPDATE webapps SET views_count = (SELECT COUNT(*) FROM webapp_views
                                      WHERE item_id = :id)
    WHERE id = :id

so two interleaved writers can never lose an update; whichever write lands
last still reflects the event table.
"""

from typing import Any, Dict, Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.database.dml import insert_ignore
from webhub.database.models import (
    CatalogItem,
    ItemClick,
    ItemShare,
    ItemView,
    Review,
    ReviewVote,
    VoteType,
    generate_id,
    utcnow,
)
from webhub.errors import NotFoundError
from webhub.quality.validators import sanitize_string

logger = structlog.get_logger(__name__)

# Identity-mapped rows are refreshed explicitly by callers that hold them
_NO_SYNC = {"synchronize_session": False}

# Width of the click source and share method columns
MAX_LABEL_LENGTH = 50


def _count_of(model, item_column, item_id: str, *criteria):
    return (
        select(func.count())
        .select_from(model)
        .where(item_column == item_id, *criteria)
        .scalar_subquery()
    )


def _views_subquery(item_id: str):
    return _count_of(ItemView, ItemView.item_id, item_id)


def _clicks_subquery(item_id: str):
    return _count_of(ItemClick, ItemClick.item_id, item_id)


def _shares_subquery(item_id: str):
    return _count_of(ItemShare, ItemShare.item_id, item_id)


def _reviews_subquery(item_id: str):
    return _count_of(Review, Review.item_id, item_id)


def _rating_subquery(item_id: str):
    return (
        select(func.coalesce(func.avg(Review.rating), 0.0))
        .where(Review.item_id == item_id)
        .scalar_subquery()
    )


async def require_item(session: AsyncSession, item_id: str) -> None:
    """Raise NotFoundError unless the item exists."""
    found = await session.scalar(select(CatalogItem.id).where(CatalogItem.id == item_id))
    if found is None:
        raise NotFoundError("Webapp not found")


async def _write_item_counter(session: AsyncSession, item_id: str, column, subquery) -> int:
    await session.execute(
        update(CatalogItem)
        .where(CatalogItem.id == item_id)
        .values({column: subquery})
        .execution_options(**_NO_SYNC)
    )
    value = await session.scalar(select(column).where(CatalogItem.id == item_id))
    return int(value or 0)


# =============================================================================
# EVENT INGESTION
# =============================================================================

async def record_view(session: AsyncSession, item_id: str, user_id: str) -> int:
    """
    Record that ``user_id`` viewed the item, at most once per (item, user).

    Returns:
        The recounted ``views_count``
    """
    await require_item(session, item_id)
    await session.execute(
        insert_ignore(session, ItemView, {
            "id": generate_id("view"),
            "item_id": item_id,
            "user_id": user_id,
            "viewed_at": utcnow(),
        })
    )
    views = await _write_item_counter(session, item_id, CatalogItem.views_count, _views_subquery(item_id))
    logger.debug("View recorded", item_id=item_id, user_id=user_id, views_count=views)
    return views


async def record_click(
    session: AsyncSession,
    item_id: str,
    user_id: Optional[str] = None,
    source: Optional[str] = None,
) -> int:
    """Record an outbound click; returns the recounted ``clicks_count``."""
    await require_item(session, item_id)
    source = sanitize_string(source)[:MAX_LABEL_LENGTH] or "direct"
    session.add(ItemClick(
        id=generate_id("click"),
        item_id=item_id,
        user_id=user_id,
        source=source,
        clicked_at=utcnow(),
    ))
    await session.flush()
    clicks = await _write_item_counter(session, item_id, CatalogItem.clicks_count, _clicks_subquery(item_id))
    logger.info("Click recorded", item_id=item_id, source=source, clicks_count=clicks)
    return clicks


async def record_share(
    session: AsyncSession,
    item_id: str,
    user_id: Optional[str] = None,
    method: Optional[str] = None,
) -> int:
    """Record a share; returns the recounted ``shares_count``."""
    await require_item(session, item_id)
    method = sanitize_string(method)[:MAX_LABEL_LENGTH] or "copy_link"
    session.add(ItemShare(
        id=generate_id("share"),
        item_id=item_id,
        user_id=user_id,
        method=method,
        shared_at=utcnow(),
    ))
    await session.flush()
    shares = await _write_item_counter(session, item_id, CatalogItem.shares_count, _shares_subquery(item_id))
    logger.info("Share recorded", item_id=item_id, method=method, shares_count=shares)
    return shares


# =============================================================================
# RECOUNTS
# =============================================================================

async def refresh_rating(session: AsyncSession, item_id: str) -> Dict[str, Any]:
    """
    Recompute ``avg_rating`` and ``reviews_count`` from the reviews table.

    An item without reviews goes back to 0 / 0.
    """
    await session.execute(
        update(CatalogItem)
        .where(CatalogItem.id == item_id)
        .values(
            avg_rating=_rating_subquery(item_id),
            reviews_count=_reviews_subquery(item_id),
        )
        .execution_options(**_NO_SYNC)
    )
    row = (await session.execute(
        select(CatalogItem.avg_rating, CatalogItem.reviews_count).where(CatalogItem.id == item_id)
    )).one()
    return {"avg_rating": float(row.avg_rating or 0), "reviews_count": int(row.reviews_count or 0)}


async def refresh_votes(session: AsyncSession, review_id: str) -> Dict[str, int]:
    """Recount a review's helpful / not-helpful tallies from review_votes."""
    helpful = _count_of(ReviewVote, ReviewVote.review_id, review_id, ReviewVote.vote_type == VoteType.HELPFUL)
    not_helpful = _count_of(
        ReviewVote, ReviewVote.review_id, review_id, ReviewVote.vote_type == VoteType.NOT_HELPFUL
    )

    await session.execute(
        update(Review)
        .where(Review.id == review_id)
        .values(helpful_count=helpful, not_helpful_count=not_helpful)
        .execution_options(**_NO_SYNC)
    )
    row = (await session.execute(
        select(Review.helpful_count, Review.not_helpful_count).where(Review.id == review_id)
    )).one()
    return {"helpful_count": int(row.helpful_count), "not_helpful_count": int(row.not_helpful_count)}


async def recount_item(session: AsyncSession, item_id: str) -> Dict[str, Any]:
    """Recompute every aggregate of one item in a single statement."""
    await require_item(session, item_id)
    await session.execute(
        update(CatalogItem)
        .where(CatalogItem.id == item_id)
        .values(
            views_count=_views_subquery(item_id),
            clicks_count=_clicks_subquery(item_id),
            shares_count=_shares_subquery(item_id),
            reviews_count=_reviews_subquery(item_id),
            avg_rating=_rating_subquery(item_id),
        )
        .execution_options(**_NO_SYNC)
    )
    row = (await session.execute(
        select(
            CatalogItem.views_count,
            CatalogItem.clicks_count,
            CatalogItem.shares_count,
            CatalogItem.reviews_count,
            CatalogItem.avg_rating,
        ).where(CatalogItem.id == item_id)
    )).one()

    counters = {
        "views_count": int(row.views_count),
        "clicks_count": int(row.clicks_count),
        "shares_count": int(row.shares_count),
        "reviews_count": int(row.reviews_count),
        "avg_rating": float(row.avg_rating or 0),
    }
    logger.info("Item counters recomputed", item_id=item_id, **counters)
    return counters
