"""
Reviews and Helpfulness Votes

One review per (item, author) and one vote per (review, voter). Every write
is followed by a recount of the affected aggregate, and a new review fans out
a notification to the item owner.
"""

from typing import Any, Dict

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.database.models import CatalogItem, Review, ReviewVote, User, VoteType, generate_id, utcnow
from webhub.errors import ConflictError, NotFoundError, ValidationError
from webhub.quality.validators import sanitize_string
from webhub.services.counters import refresh_rating, refresh_votes
from webhub.services.notifications import notify_new_review

logger = structlog.get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def clamp_rating(rating: Any) -> int:
    """Coerce to int and clamp into [1, 5]."""
    try:
        value = int(float(rating))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(["Rating must be a number between 1 and 5"])
    return max(MIN_RATING, min(MAX_RATING, value))


async def create_review(
    session: AsyncSession,
    item_id: str,
    user_id: str,
    rating: Any,
    comment: Any = None,
) -> Dict[str, Any]:
    """
    Post a review and refresh the item's rating aggregates.

    Raises:
        NotFoundError: Unknown item
        ConflictError: The user already reviewed this item
    """
    item = await session.get(CatalogItem, item_id)
    if item is None:
        raise NotFoundError("Webapp not found")

    existing = await session.scalar(
        select(Review.id).where(Review.item_id == item_id, Review.user_id == user_id)
    )
    if existing is not None:
        raise ConflictError("You have already reviewed this webapp")

    review = Review(
        id=generate_id("review"),
        item_id=item_id,
        user_id=user_id,
        rating=clamp_rating(rating),
        comment=sanitize_string(comment),
        helpful_count=0,
        not_helpful_count=0,
        created_at=utcnow(),
    )
    session.add(review)
    try:
        await session.flush()
    except IntegrityError as e:
        # Lost the race against a concurrent review by the same author
        raise ConflictError("You have already reviewed this webapp") from e

    aggregates = await refresh_rating(session, item_id)

    reviewer_name = await session.scalar(select(User.name).where(User.id == user_id))
    await notify_new_review(
        session,
        owner_id=item.creator_id,
        reviewer_id=user_id,
        reviewer_name=reviewer_name,
        item_id=item_id,
        item_name=item.name,
        review_id=review.id,
        rating=review.rating,
    )

    logger.info(
        "Review created",
        review_id=review.id,
        item_id=item_id,
        user_id=user_id,
        rating=review.rating,
        avg_rating=aggregates["avg_rating"],
    )
    return {"review": review, **aggregates}


async def vote_review(
    session: AsyncSession,
    review_id: str,
    user_id: str,
    vote_type: Any,
) -> Dict[str, int]:
    """
    Cast or change a helpfulness vote.

    Returns:
        The recounted helpful_count / not_helpful_count of the review
    """
    try:
        kind = VoteType(vote_type)
    except ValueError:
        raise ValidationError(["vote_type must be 'helpful' or 'not_helpful'"])

    if await session.scalar(select(Review.id).where(Review.id == review_id)) is None:
        raise NotFoundError("Review not found")

    vote = await session.scalar(
        select(ReviewVote).where(ReviewVote.review_id == review_id, ReviewVote.user_id == user_id)
    )
    if vote is None:
        session.add(ReviewVote(
            id=generate_id("vote"),
            review_id=review_id,
            user_id=user_id,
            vote_type=kind,
            created_at=utcnow(),
        ))
    else:
        vote.vote_type = kind
    await session.flush()

    tallies = await refresh_votes(session, review_id)
    logger.info("Review vote recorded", review_id=review_id, user_id=user_id, vote_type=kind.value, **tallies)
    return tallies
