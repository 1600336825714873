"""
Unit Tests - Badge Eligibility
"""
from datetime import datetime, timedelta

import pytest

from webhub.quality.badges import UserStats, evaluate_badges

NOW = datetime(2026, 3, 1, 12, 0, 0)
OLD_ACCOUNT = NOW - timedelta(days=45)
NEW_ACCOUNT = NOW - timedelta(days=2)


class TestEvaluateBadges:
    """Tests for evaluate_badges"""

    def test_no_activity_no_badges(self):
        assert evaluate_badges([], UserStats(), OLD_ACCOUNT, now=NOW) == []

    def test_verified_creator_needs_items_and_age(self):
        stats = UserStats(items_count=3)

        assert evaluate_badges([], stats, OLD_ACCOUNT, now=NOW) == ["verified-creator"]
        assert evaluate_badges([], stats, NEW_ACCOUNT, now=NOW) == []
        assert evaluate_badges([], UserStats(items_count=2), OLD_ACCOUNT, now=NOW) == []

    def test_beginner_tester(self):
        assert evaluate_badges([], UserStats(reviews_count=10), NEW_ACCOUNT, now=NOW) == ["beginner-tester"]
        assert evaluate_badges([], UserStats(reviews_count=9), NEW_ACCOUNT, now=NOW) == []

    @pytest.mark.parametrize("ratio,expected", [
        (0.69, ["beginner-tester"]),
        (0.7, ["beginner-tester", "pro-tester"]),
    ])
    def test_pro_tester_needs_helpful_ratio(self, ratio, expected):
        stats = UserStats(reviews_count=50, helpful_ratio=ratio)

        assert evaluate_badges([], stats, NEW_ACCOUNT, now=NOW) == expected

    def test_legendary_tester(self):
        stats = UserStats(reviews_count=200, helpful_ratio=0.8)

        assert evaluate_badges([], stats, NEW_ACCOUNT, now=NOW) == [
            "beginner-tester",
            "pro-tester",
            "legendary-tester",
        ]

    def test_legendary_ratio_below_threshold(self):
        stats = UserStats(reviews_count=250, helpful_ratio=0.75)

        assert "legendary-tester" not in evaluate_badges([], stats, NEW_ACCOUNT, now=NOW)

    def test_held_badges_not_repeated(self):
        stats = UserStats(reviews_count=60, helpful_ratio=0.9)

        assert evaluate_badges(["beginner-tester"], stats, NEW_ACCOUNT, now=NOW) == ["pro-tester"]

    def test_never_removes_existing_badges(self):
        """Badges held without current eligibility are left untouched"""
        held = ["verified-creator", "legendary-tester"]

        new = evaluate_badges(held, UserStats(), NEW_ACCOUNT, now=NOW)

        assert new == []
        assert held == ["verified-creator", "legendary-tester"]

    def test_unknown_account_age_blocks_verified_creator(self):
        assert evaluate_badges([], UserStats(items_count=10), None, now=NOW) == []
