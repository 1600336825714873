"""
Badge Eligibility

Pure policy: given the badges a user already holds and their rolling
statistics, return the badges they have newly earned. Badges are never
revoked, so the result only ever adds to the input set.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from webhub.quality.trust import account_age

VERIFIED_CREATOR = "verified-creator"
BEGINNER_TESTER = "beginner-tester"
PRO_TESTER = "pro-tester"
LEGENDARY_TESTER = "legendary-tester"


@dataclass(frozen=True)
class UserStats:
    """Caller-supplied statistics; the evaluator never touches storage"""
    items_count: int = 0
    reviews_count: int = 0
    helpful_ratio: float = 0.0


def evaluate_badges(
    current_badges: Iterable[str],
    stats: UserStats,
    account_created_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> List[str]:
    """
    Work out which badges a user has just earned.

    Thresholds:
        verified-creator: 3+ items and an account at least 30 days old
        beginner-tester:  10+ reviews
        pro-tester:       50+ reviews, helpful ratio >= 0.7
        legendary-tester: 200+ reviews, helpful ratio >= 0.8

    Returns:
        Badges to append, excluding any already held
    """
    held = set(current_badges)
    new_badges: List[str] = []

    def grant(badge: str, earned: bool) -> None:
        if earned and badge not in held:
            new_badges.append(badge)

    grant(
        VERIFIED_CREATOR,
        stats.items_count >= 3 and account_age(account_created_at, now) >= timedelta(days=30),
    )
    grant(BEGINNER_TESTER, stats.reviews_count >= 10)
    grant(PRO_TESTER, stats.reviews_count >= 50 and stats.helpful_ratio >= 0.7)
    grant(LEGENDARY_TESTER, stats.reviews_count >= 200 and stats.helpful_ratio >= 0.8)

    return new_badges
