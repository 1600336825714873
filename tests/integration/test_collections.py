"""
Integration Tests - Collections
"""
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from webhub.database.models import CollectionItem, utcnow
from webhub.errors import AuthorizationError, NotFoundError, ValidationError
from webhub.services import collections


class TestMembership:
    """Tests for adding and removing items"""

    async def test_adding_twice_keeps_one_row(self, test_db, make_user, make_item):
        owner = await make_user()
        item = await make_item(owner)
        collection = await collections.create_collection(test_db, owner.id, "Favorites")

        await collections.add_item(test_db, collection.id, item.id, owner.id)
        await collections.add_item(test_db, collection.id, item.id, owner.id)

        rows = await test_db.scalar(select(func.count()).select_from(CollectionItem))
        assert rows == 1
        detail = await collections.get_collection(test_db, collection.id, owner.id)
        assert detail["items_count"] == 1

    async def test_only_owner_adds(self, test_db, make_user, make_item):
        owner = await make_user()
        other = await make_user(name="Bob")
        item = await make_item(owner)
        collection = await collections.create_collection(test_db, owner.id, "Favorites", is_public=True)

        with pytest.raises(AuthorizationError):
            await collections.add_item(test_db, collection.id, item.id, other.id)

    async def test_add_unknown_item(self, test_db, make_user):
        owner = await make_user()
        collection = await collections.create_collection(test_db, owner.id, "Favorites")

        with pytest.raises(NotFoundError):
            await collections.add_item(test_db, collection.id, "webapp_missing", owner.id)

    async def test_add_bumps_updated_at(self, test_db, make_user, make_item):
        owner = await make_user()
        item = await make_item(owner)
        collection = await collections.create_collection(test_db, owner.id, "Favorites")
        stale = utcnow() - timedelta(days=1)
        collection.updated_at = stale
        await test_db.flush()

        updated = await collections.add_item(test_db, collection.id, item.id, owner.id)

        assert updated.updated_at > stale

    async def test_remove_item(self, test_db, make_user, make_item):
        owner = await make_user()
        keep = await make_item(owner)
        drop = await make_item(owner)
        collection = await collections.create_collection(test_db, owner.id, "Favorites")
        await collections.add_item(test_db, collection.id, keep.id, owner.id)
        await collections.add_item(test_db, collection.id, drop.id, owner.id)

        await collections.remove_item(test_db, collection.id, drop.id, owner.id)

        members = await collections.list_collection_items(test_db, collection.id, owner.id)
        assert [i.id for i in members] == [keep.id]

    async def test_remove_non_member_is_noop(self, test_db, make_user, make_item):
        owner = await make_user()
        item = await make_item(owner)
        collection = await collections.create_collection(test_db, owner.id, "Favorites")

        await collections.remove_item(test_db, collection.id, item.id, owner.id)

        assert await collections.list_collection_items(test_db, collection.id, owner.id) == []


class TestVisibility:
    """Private collections are visible to their owner only"""

    async def test_private_hidden_from_others(self, test_db, make_user):
        owner = await make_user()
        other = await make_user(name="Bob")
        collection = await collections.create_collection(test_db, owner.id, "Secret")

        with pytest.raises(AuthorizationError):
            await collections.get_collection(test_db, collection.id, other.id)
        with pytest.raises(AuthorizationError):
            await collections.get_collection(test_db, collection.id)
        with pytest.raises(AuthorizationError):
            await collections.list_collection_items(test_db, collection.id, other.id)

        assert (await collections.get_collection(test_db, collection.id, owner.id))["name"] == "Secret"

    async def test_public_visible_to_anyone(self, test_db, make_user):
        owner = await make_user()
        collection = await collections.create_collection(test_db, owner.id, "Shared", is_public=True)

        detail = await collections.get_collection(test_db, collection.id)

        assert detail["is_public"] is True
        assert detail["items_count"] == 0

    async def test_unknown_collection(self, test_db):
        with pytest.raises(NotFoundError):
            await collections.get_collection(test_db, "collection_missing")


class TestLifecycle:
    """Tests for create, update, delete and listings"""

    async def test_name_required(self, test_db, make_user):
        owner = await make_user()

        with pytest.raises(ValidationError):
            await collections.create_collection(test_db, owner.id, "   ")

    async def test_update_toggles_visibility(self, test_db, make_user):
        owner = await make_user()
        other = await make_user(name="Bob")
        collection = await collections.create_collection(test_db, owner.id, "Drafts")

        await collections.update_collection(
            test_db, collection.id, {"is_public": True, "description": "Now shared"}, owner.id
        )

        detail = await collections.get_collection(test_db, collection.id, other.id)
        assert detail["description"] == "Now shared"
        assert detail["name"] == "Drafts"

    async def test_non_owner_cannot_update_or_delete(self, test_db, make_user):
        owner = await make_user()
        other = await make_user(name="Bob")
        collection = await collections.create_collection(test_db, owner.id, "Mine", is_public=True)

        with pytest.raises(AuthorizationError):
            await collections.update_collection(test_db, collection.id, {"name": "Theirs"}, other.id)
        with pytest.raises(AuthorizationError):
            await collections.delete_collection(test_db, collection.id, other.id)

    async def test_delete_removes_memberships(self, test_db, make_user, make_item):
        owner = await make_user()
        item = await make_item(owner)
        collection = await collections.create_collection(test_db, owner.id, "Temp")
        await collections.add_item(test_db, collection.id, item.id, owner.id)
        collection_id = collection.id

        await collections.delete_collection(test_db, collection_id, owner.id)

        with pytest.raises(NotFoundError):
            await collections.get_collection(test_db, collection_id, owner.id)
        assert await test_db.scalar(select(func.count()).select_from(CollectionItem)) == 0

    async def test_user_collections_include_private(self, test_db, make_user, make_item):
        owner = await make_user()
        item = await make_item(owner)
        private = await collections.create_collection(test_db, owner.id, "Private")
        await collections.create_collection(test_db, owner.id, "Public", is_public=True)
        await collections.add_item(test_db, private.id, item.id, owner.id)

        listed = await collections.list_user_collections(test_db, owner.id)

        counts = {c["name"]: c["items_count"] for c in listed}
        assert counts == {"Private": 1, "Public": 0}

    async def test_public_list(self, test_db, make_user):
        owner = await make_user(name="Ada")
        await collections.create_collection(test_db, owner.id, "Hidden")
        await collections.create_collection(test_db, owner.id, "Shown", is_public=True)

        listed = await collections.list_public_collections(test_db)

        assert [(c["name"], c["creator_name"], c["items_count"]) for c in listed] == [("Shown", "Ada", 0)]
