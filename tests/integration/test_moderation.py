"""
Integration Tests - Reports and Admin Actions
"""
import pytest
from sqlalchemy import func, select

from webhub.database.models import ItemClick, ReportStatus, Review
from webhub.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from webhub.services import counters, moderation, reviews


class TestFileReport:
    """Tests for user reports"""

    async def test_report_filed_pending(self, test_db, make_user, make_item):
        owner = await make_user()
        reporter = await make_user(name="Bob")
        item = await make_item(owner)

        report = await moderation.file_report(test_db, reporter.id, "item", item.id, "Spam link")

        assert report.status == ReportStatus.PENDING
        assert report.resolved_at is None

    @pytest.mark.parametrize("target_type,target_id,reason", [
        ("webapp", "webapp_1", "Spam"),
        ("item", "", "Spam"),
        ("item", "webapp_1", "   "),
        ("item", "webapp_1", None),
        ("item", "w" * 65, "Spam"),
    ])
    async def test_invalid_reports(self, test_db, make_user, target_type, target_id, reason):
        reporter = await make_user()

        with pytest.raises(ValidationError):
            await moderation.file_report(test_db, reporter.id, target_type, target_id, reason)


class TestReportQueue:
    """Tests for listing and resolving reports"""

    async def test_list_with_reporter_name(self, test_db, make_user):
        reporter = await make_user(name="Bob")
        await moderation.file_report(test_db, reporter.id, "user", "user_x", "Impersonation")

        reports = await moderation.list_reports(test_db)

        assert len(reports) == 1
        assert reports[0]["reporter_name"] == "Bob"
        assert reports[0]["target_type"] == "user"
        assert reports[0]["status"] == "pending"

    async def test_filter_by_status(self, test_db, make_user):
        reporter = await make_user()
        first = await moderation.file_report(test_db, reporter.id, "review", "review_a", "Rude")
        await moderation.file_report(test_db, reporter.id, "review", "review_b", "Rude")
        await moderation.resolve_report(test_db, first.id)

        assert [r["id"] for r in await moderation.list_reports(test_db, "resolved")] == [first.id]
        assert len(await moderation.list_reports(test_db, "pending")) == 1

    async def test_invalid_status_filter(self, test_db):
        with pytest.raises(ValidationError):
            await moderation.list_reports(test_db, "closed")

    async def test_resolve_is_one_way(self, test_db, make_user):
        reporter = await make_user()
        report = await moderation.file_report(test_db, reporter.id, "collection", "collection_a", "Offensive")

        resolved = await moderation.resolve_report(test_db, report.id, "Removed")
        assert resolved.status == ReportStatus.RESOLVED
        assert resolved.admin_notes == "Removed"
        assert resolved.resolved_at is not None

        with pytest.raises(ConflictError):
            await moderation.resolve_report(test_db, report.id)

    async def test_resolve_unknown(self, test_db):
        with pytest.raises(NotFoundError):
            await moderation.resolve_report(test_db, "report_missing")


class TestAdminItems:
    """Tests for admin item operations"""

    async def test_admin_delete_cascades(self, test_db, make_user, make_item):
        owner = await make_user()
        reviewer = await make_user(name="Bob")
        item = await make_item(owner)
        await counters.record_click(test_db, item.id)
        await reviews.create_review(test_db, item.id, reviewer.id, 3)
        item_id = item.id

        await moderation.admin_delete_item(test_db, item_id)

        assert await test_db.scalar(select(func.count()).select_from(Review)) == 0
        assert await test_db.scalar(select(func.count()).select_from(ItemClick)) == 0
        with pytest.raises(NotFoundError):
            await moderation.admin_delete_item(test_db, item_id)

    async def test_list_all_includes_pending(self, test_db, make_user, make_item):
        owner = await make_user()
        await make_item(owner)
        await make_item(owner, url="https://bit.ly/pending", tags="")

        assert len(await moderation.list_all_items(test_db)) == 2


class TestAdminLogin:

    def test_valid_credentials(self):
        assert moderation.admin_login("admin@webhub.test", "admin-pass") == {
            "email": "admin@webhub.test",
            "role": "admin",
        }

    @pytest.mark.parametrize("email,password", [
        ("admin@webhub.test", "wrong"),
        ("someone@webhub.test", "admin-pass"),
        (None, None),
    ])
    def test_rejected(self, email, password):
        with pytest.raises(AuthorizationError):
            moderation.admin_login(email, password)
