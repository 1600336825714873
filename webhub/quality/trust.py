"""
Trust Scoring

Heuristic 0-100 confidence rating for a new catalog submission. The score is
computed exactly once, when the item is created, and decides whether the item
is listed immediately or held for manual review.
"""

from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import urlsplit

from webhub.database.models import ItemStatus, utcnow
from webhub.quality.validators import parse_tags

BASE_SCORE = 50
MIN_SCORE = 0
MAX_SCORE = 100
APPROVAL_THRESHOLD = 30
ESTABLISHED_ACCOUNT_AGE = timedelta(days=30)

LINK_SHORTENERS = ("bit.ly", "tinyurl.com", "goo.gl", "t.co")

VERIFIED_CREATOR_BONUS = 20
ACCOUNT_AGE_BONUS = 10
HTTPS_BONUS = 10
LONG_DESCRIPTION_BONUS = 10
GITHUB_BONUS = 10
VIDEO_BONUS = 5
IMAGE_BONUS = 5
SHORT_DESCRIPTION_PENALTY = -20
NO_TAGS_PENALTY = -10
SHORTENER_PENALTY = -30


def _is_shortened(url: str) -> bool:
    try:
        hostname = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return False
    return any(hostname == d or hostname.endswith("." + d) for d in LINK_SHORTENERS)


def account_age(created_at: Optional[datetime], now: Optional[datetime] = None) -> timedelta:
    """Age of an account; unknown creation time counts as brand new."""
    if created_at is None:
        return timedelta(0)
    return (now or utcnow()) - created_at


def calculate_trust_score(
    submission: Mapping[str, Any],
    submitter: Any,
    now: Optional[datetime] = None,
) -> int:
    """
    Score a submission.

    Args:
        submission: Raw submission fields (url, description_short, tags, ...)
        submitter: Anything with ``badges`` and ``created_at`` (a ``User`` row)
        now: Clock override for account-age arithmetic

    Returns:
        Integer score clamped to [0, 100]
    """
    badges: Sequence[str] = getattr(submitter, "badges", None) or []
    created_at: Optional[datetime] = getattr(submitter, "created_at", None)

    url = submission.get("url") or ""
    description_short = submission.get("description_short") or ""
    description_long = submission.get("description_long") or ""

    score = BASE_SCORE

    if "verified-creator" in badges:
        score += VERIFIED_CREATOR_BONUS
    if account_age(created_at, now) >= ESTABLISHED_ACCOUNT_AGE:
        score += ACCOUNT_AGE_BONUS
    if isinstance(url, str) and url.startswith("https://"):
        score += HTTPS_BONUS
    if len(description_long) > 100:
        score += LONG_DESCRIPTION_BONUS
    if submission.get("github_url"):
        score += GITHUB_BONUS
    if submission.get("video_url"):
        score += VIDEO_BONUS
    if submission.get("image_url"):
        score += IMAGE_BONUS

    # Penalties
    if len(description_short) < 20:
        score += SHORT_DESCRIPTION_PENALTY
    if not parse_tags(submission.get("tags")):
        score += NO_TAGS_PENALTY
    if isinstance(url, str) and _is_shortened(url):
        score += SHORTENER_PENALTY

    return max(MIN_SCORE, min(MAX_SCORE, score))


def decide_status(score: int, threshold: int = APPROVAL_THRESHOLD) -> ItemStatus:
    """Items at or above the threshold are listed; the rest wait for an admin."""
    return ItemStatus.APPROVED if score >= threshold else ItemStatus.PENDING_REVIEW
