"""
Unit Tests - Trust Scoring
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from webhub.database.models import ItemStatus
from webhub.quality.trust import calculate_trust_score, decide_status

NOW = datetime(2026, 3, 1, 12, 0, 0)


def submitter(age_days: int = 0, badges=None):
    return SimpleNamespace(badges=badges or [], created_at=NOW - timedelta(days=age_days))


def bare(**overrides):
    """No links, no long description, no tags, valid short description"""
    data = {
        "url": "http://example.com",
        "description_short": "A perfectly ordinary webapp",
    }
    data.update(overrides)
    return data


class TestTrustScore:
    """Tests for calculate_trust_score"""

    def test_bare_submission_by_new_user(self):
        """Base 50, minus 10 for no tags"""
        assert calculate_trust_score(bare(), submitter(), now=NOW) == 40

    def test_https_adds_ten(self):
        assert calculate_trust_score(bare(url="https://example.com"), submitter(), now=NOW) == 50

    def test_fully_loaded_submission_clamps_at_100(self):
        data = bare(
            url="https://example.com",
            description_long="x" * 101,
            github_url="https://github.com/me/app",
            video_url="https://youtu.be/abc",
            image_url="https://example.com/shot.png",
            tags="tools, ai",
        )
        veteran = submitter(age_days=400, badges=["verified-creator"])

        # 50 + 20 + 10 + 10 + 10 + 10 + 5 + 5 = 120
        assert calculate_trust_score(data, veteran, now=NOW) == 100

    def test_established_account_with_tags_and_github(self):
        data = bare(url="https://example.com", tags="tools", github_url="https://github.com/me/app")

        # 50 + 10 (age) + 10 (https) + 10 (github)
        assert calculate_trust_score(data, submitter(age_days=30), now=NOW) == 80

    def test_account_age_threshold(self):
        data = bare(tags="tools")

        assert calculate_trust_score(data, submitter(age_days=29), now=NOW) == 50
        assert calculate_trust_score(data, submitter(age_days=30), now=NOW) == 60

    def test_long_description_must_exceed_100(self):
        data = bare(tags="tools")

        assert calculate_trust_score({**data, "description_long": "x" * 100}, submitter(), now=NOW) == 50
        assert calculate_trust_score({**data, "description_long": "x" * 101}, submitter(), now=NOW) == 60

    def test_penalties_clamp_at_zero(self):
        data = {"url": "http://bit.ly/abc", "description_short": "tiny"}

        # 50 - 20 - 10 - 30 = -10
        assert calculate_trust_score(data, submitter(), now=NOW) == 0

    @pytest.mark.parametrize("url", [
        "https://bit.ly/x",
        "https://tinyurl.com/x",
        "https://goo.gl/x",
        "https://t.co/x",
        "https://www.bit.ly/x",
    ])
    def test_link_shorteners_penalized(self, url):
        assert calculate_trust_score(bare(url=url, tags="a"), submitter(), now=NOW) == 30

    def test_shortener_match_is_host_based(self):
        """Hosts that merely contain a shortener domain are not penalized"""
        data = bare(url="https://microsoft.com", tags="a")

        assert calculate_trust_score(data, submitter(), now=NOW) == 60

    def test_tags_counted_after_parsing(self):
        """A tag string that parses to nothing counts as no tags"""
        assert calculate_trust_score(bare(tags=" , ,"), submitter(), now=NOW) == 40

    def test_score_always_in_range(self):
        combos = [
            ({}, submitter()),
            (bare(url="https://x.com", tags="a", github_url="g", video_url="v", image_url="i"),
             submitter(400, ["verified-creator"])),
            ({"url": "https://t.co/x"}, submitter()),
        ]
        for data, user in combos:
            assert 0 <= calculate_trust_score(data, user, now=NOW) <= 100

    def test_unknown_submitter_counts_as_new(self):
        assert calculate_trust_score(bare(), None, now=NOW) == 40


class TestDecideStatus:

    @pytest.mark.parametrize("score,status", [
        (0, ItemStatus.PENDING_REVIEW),
        (29, ItemStatus.PENDING_REVIEW),
        (30, ItemStatus.APPROVED),
        (100, ItemStatus.APPROVED),
    ])
    def test_default_threshold(self, score, status):
        assert decide_status(score) == status

    def test_custom_threshold(self):
        assert decide_status(45, threshold=50) == ItemStatus.PENDING_REVIEW
