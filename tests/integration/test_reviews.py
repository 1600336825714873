"""
Integration Tests - Reviews, Votes and Review Notifications
"""
import pytest
from sqlalchemy import func, select

from webhub.database.models import Notification, Review, ReviewVote
from webhub.errors import ConflictError, NotFoundError, ValidationError
from webhub.services import reviews


class TestCreateReview:
    """Tests for create_review"""

    async def test_second_review_by_same_author_conflicts(self, test_db, make_user, make_item):
        owner = await make_user()
        reviewer = await make_user(name="Bob")
        item = await make_item(owner)

        await reviews.create_review(test_db, item.id, reviewer.id, 4, "Solid")
        with pytest.raises(ConflictError):
            await reviews.create_review(test_db, item.id, reviewer.id, 1, "Changed my mind")

        await test_db.refresh(item)
        assert item.reviews_count == 1
        assert item.avg_rating == pytest.approx(4.0)

    @pytest.mark.parametrize("raw,stored", [(9, 5), (0, 1), (-3, 1), ("4", 4), (3.7, 3)])
    async def test_rating_clamped(self, test_db, make_user, make_item, raw, stored):
        owner = await make_user()
        reviewer = await make_user(name="Bob")
        item = await make_item(owner)

        result = await reviews.create_review(test_db, item.id, reviewer.id, raw)

        assert result["review"].rating == stored

    @pytest.mark.parametrize("raw", ["great", float("inf"), float("-inf"), float("nan"), "1e999", None])
    async def test_non_numeric_rating(self, test_db, make_user, make_item, raw):
        owner = await make_user()
        item = await make_item(owner)

        with pytest.raises(ValidationError):
            await reviews.create_review(test_db, item.id, owner.id, raw)

    async def test_comment_sanitized(self, test_db, make_user, make_item):
        owner = await make_user()
        reviewer = await make_user(name="Bob")
        item = await make_item(owner)

        result = await reviews.create_review(test_db, item.id, reviewer.id, 5, "  <script>nice</script> ")

        assert result["review"].comment == "scriptnice/script"

    async def test_unknown_item(self, test_db, make_user):
        reviewer = await make_user()

        with pytest.raises(NotFoundError):
            await reviews.create_review(test_db, "webapp_missing", reviewer.id, 5)


class TestReviewNotification:
    """New reviews notify the owner, except self-reviews"""

    async def test_owner_notified(self, test_db, make_user, make_item):
        owner = await make_user(name="Ada")
        reviewer = await make_user(name="Bob")
        item = await make_item(owner, name="Pixel Forge")

        result = await reviews.create_review(test_db, item.id, reviewer.id, 4)

        notification = await test_db.scalar(select(Notification).where(Notification.user_id == owner.id))
        assert notification.type == "new_review"
        assert notification.title == "New review on your webapp"
        assert notification.message == 'Bob gave 4 stars to "Pixel Forge"'
        assert notification.data == {"webappId": item.id, "reviewId": result["review"].id, "rating": 4}
        assert notification.read is False

    async def test_self_review_not_notified(self, test_db, make_user, make_item):
        owner = await make_user()
        item = await make_item(owner)

        await reviews.create_review(test_db, item.id, owner.id, 5)

        assert await test_db.scalar(select(func.count()).select_from(Notification)) == 0


class TestVoteReview:
    """Tests for helpfulness votes"""

    async def _review(self, test_db, make_user, make_item):
        owner = await make_user()
        author = await make_user(name="Bob")
        item = await make_item(owner)
        result = await reviews.create_review(test_db, item.id, author.id, 4)
        return result["review"]

    async def test_flip_vote(self, test_db, make_user, make_item):
        review = await self._review(test_db, make_user, make_item)
        voter = await make_user(name="Cy")

        first = await reviews.vote_review(test_db, review.id, voter.id, "helpful")
        second = await reviews.vote_review(test_db, review.id, voter.id, "not_helpful")

        assert first == {"helpful_count": 1, "not_helpful_count": 0}
        assert second == {"helpful_count": 0, "not_helpful_count": 1}
        assert await test_db.scalar(select(func.count()).select_from(ReviewVote)) == 1

    async def test_repeat_vote_is_idempotent(self, test_db, make_user, make_item):
        review = await self._review(test_db, make_user, make_item)
        voter = await make_user(name="Cy")

        await reviews.vote_review(test_db, review.id, voter.id, "helpful")
        tallies = await reviews.vote_review(test_db, review.id, voter.id, "helpful")

        assert tallies == {"helpful_count": 1, "not_helpful_count": 0}

    async def test_votes_from_several_users(self, test_db, make_user, make_item):
        review = await self._review(test_db, make_user, make_item)

        for i, kind in enumerate(["helpful", "helpful", "not_helpful"]):
            voter = await make_user(name=f"voter-{i}")
            tallies = await reviews.vote_review(test_db, review.id, voter.id, kind)

        assert tallies == {"helpful_count": 2, "not_helpful_count": 1}
        stored = await test_db.scalar(
            select(Review.helpful_count).where(Review.id == review.id).execution_options(populate_existing=True)
        )
        assert stored == 2

    async def test_invalid_vote_type(self, test_db, make_user, make_item):
        review = await self._review(test_db, make_user, make_item)

        with pytest.raises(ValidationError):
            await reviews.vote_review(test_db, review.id, review.user_id, "love")

    async def test_unknown_review(self, test_db, make_user):
        voter = await make_user()

        with pytest.raises(NotFoundError):
            await reviews.vote_review(test_db, "review_missing", voter.id, "helpful")
