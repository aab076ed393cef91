import asyncio
import re

import pytest

from conftest import FakeRepository
from core.config import AppSettings
from core.domain.errors import AdminAuthError, FetchError, MutationError, UploadError
from core.domain.models import CatalogItemDraft, CatalogItemPatch, TimelineEntryDraft
from core.services.admin import AdminGate, CatalogAdmin, build_upload_path
from core.services.catalog_store import CatalogStore, LoadStatus


@pytest.fixture
def gate(settings):
    gate = AdminGate(settings)
    assert gate.check("letmein")
    return gate


@pytest.fixture
def store(repository, settings):
    store = CatalogStore(repository, settings=settings)
    asyncio.run(store.load("inventory"))
    return store


@pytest.fixture
def admin(repository, gate, store):
    return CatalogAdmin(repository=repository, storage=repository, gate=gate, store=store)


class TestAdminGate:
    def test_wrong_password(self, settings):
        gate = AdminGate(settings)
        assert not gate.check("guess")
        assert not gate.authenticated

    def test_right_password_then_logout(self, settings):
        gate = AdminGate(settings)
        assert gate.check("letmein")
        gate.logout()
        assert not gate.authenticated

    def test_unconfigured_gate_refuses_everything(self):
        gate = AdminGate(AppSettings(_env_file=None, admin_password=None))
        assert not gate.configured
        assert not gate.check("")
        assert not gate.check("anything")

    def test_locked_admin_does_not_touch_the_backend(self, repository, settings):
        admin = CatalogAdmin(repository=repository, storage=repository, gate=AdminGate(settings))
        with pytest.raises(AdminAuthError):
            asyncio.run(admin.create_item(CatalogItemDraft(title="Nope")))
        with pytest.raises(AdminAuthError):
            asyncio.run(admin.upload_image(b"data", "a.png"))
        assert repository.calls == []


class TestItemMutations:
    def test_create_refreshes_store(self, admin, repository, store):
        draft = CatalogItemDraft(title="New Canvas", tags=["Urban"], year=2024)
        item = asyncio.run(admin.create_item(draft))

        assert item.id.startswith("new-")
        assert item.year == "2024"
        assert repository.count("fetch_items") == 2
        assert "New Canvas" in [i.title for i in store.state.items]
        assert store.state.items[0].title == "New Canvas"

    def test_update_sends_only_set_fields(self, admin, repository, store):
        item = asyncio.run(admin.update_item("inv-1", CatalogItemPatch(tags=["Landscape", "Sea"])))

        assert item.tags == ["Landscape", "Sea"]
        assert ("update_item", "inv-1", {"tags": ["Landscape", "Sea"]}) in repository.calls
        assert "Sea" in store.state.tag_index

    def test_delete_refreshes_store(self, admin, store):
        asyncio.run(admin.delete_item("inv-3"))
        assert [i.id for i in store.state.items] == ["inv-1", "inv-2"]

    def test_failed_write_leaves_store_untouched(self, admin, repository, store):
        before = store.state
        repository.fail_mutation = True

        with pytest.raises(MutationError):
            asyncio.run(admin.delete_item("inv-1"))

        assert store.state == before
        assert store.state.items == before.items
        assert store.state.status is LoadStatus.READY
        assert repository.count("fetch_items") == 1

    def test_admin_without_store_still_writes(self, repository, gate):
        admin = CatalogAdmin(repository=repository, storage=repository, gate=gate)
        asyncio.run(admin.delete_item("inv-1"))
        assert repository.count("fetch_items") == 0
        assert "inv-1" not in [r["id"] for r in repository.records]


class TestUploads:
    def test_upload_path_shape(self):
        assert re.fullmatch(r"portfolio/[0-9a-f]{16}\.png", build_upload_path("Photo.PNG"))
        assert re.fullmatch(r"timeline/[0-9a-f]{16}\.jpg", build_upload_path("x.jpg", "timeline"))

    def test_upload_paths_do_not_collide(self):
        assert build_upload_path("a.png") != build_upload_path("a.png")

    def test_missing_extension(self):
        assert build_upload_path("README").endswith(".bin")

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            build_upload_path("a.png", "avatars")

    def test_upload_returns_public_url(self, admin, repository):
        url = asyncio.run(admin.upload_image(b"\x89PNG", "harbor.png", content_type="image/png"))
        (path,) = repository.assets
        assert url.endswith(path)
        assert path.startswith("portfolio/")

    def test_empty_upload_is_rejected(self, admin, repository):
        with pytest.raises(UploadError):
            asyncio.run(admin.upload_image(b"", "a.png"))
        assert repository.assets == {}

    def test_storage_failure_propagates(self, admin, repository):
        repository.fail_upload = True
        with pytest.raises(UploadError):
            asyncio.run(admin.upload_image(b"data", "a.png"))


class TestTimeline:
    def test_new_entry_goes_last(self, admin):
        entry = asyncio.run(admin.add_timeline_entry("com-1", TimelineEntryDraft(title="Varnish")))
        assert entry.order == 3
        assert entry.portfolio_id == "com-1"

    def test_first_entry_starts_at_zero(self, admin):
        entry = asyncio.run(admin.add_timeline_entry("inv-1", TimelineEntryDraft(title="Sketch")))
        assert entry.order == 0

    def test_move_down_swaps_with_next(self, admin):
        entries = asyncio.run(admin.move_timeline_entry("com-1", "t-1", "down"))
        assert [e.id for e in entries] == ["t-2", "t-1", "t-3"]
        assert [e.order for e in entries] == [0, 1, 2]

    def test_move_up_swaps_with_previous(self, admin):
        entries = asyncio.run(admin.move_timeline_entry("com-1", "t-3", "up"))
        assert [e.id for e in entries] == ["t-1", "t-3", "t-2"]

    def test_move_past_edge_is_noop(self, admin, repository):
        entries = asyncio.run(admin.move_timeline_entry("com-1", "t-1", "up"))
        assert [e.id for e in entries] == ["t-1", "t-2", "t-3"]
        assert repository.count("update_timeline_entry") == 0

    def test_reorder_after_delete_and_add(self, admin):
        async def scenario():
            await admin.delete_timeline_entry("t-2")
            added = await admin.add_timeline_entry("com-1", TimelineEntryDraft(title="Varnish"))
            moved = await admin.move_timeline_entry("com-1", added.id, "up")
            return added, moved

        added, moved = asyncio.run(scenario())
        assert added.order == 3
        assert [e.id for e in moved] == ["t-1", added.id, "t-3"]
        assert [e.order for e in moved] == [0, 1, 2]

    def test_move_repairs_duplicate_orders(self, admin, repository):
        for row in repository.timeline:
            if row["id"] == "t-2":
                row["order"] = 2

        entries = asyncio.run(admin.move_timeline_entry("com-1", "t-3", "up"))
        assert [e.order for e in entries] == [0, 1, 2]
        assert len({e.order for e in entries}) == 3

    def test_malformed_timeline_is_a_fetch_error(self, admin, repository):
        repository.timeline.append({"id": "t-bad", "portfolio_id": "com-1", "order": -4})
        with pytest.raises(FetchError):
            asyncio.run(admin.list_timeline("com-1"))

    def test_move_unknown_entry(self, admin):
        with pytest.raises(MutationError):
            asyncio.run(admin.move_timeline_entry("com-1", "t-9", "down"))

    def test_delete_entry(self, admin, repository):
        asyncio.run(admin.delete_timeline_entry("t-2"))
        entries = asyncio.run(admin.list_timeline("com-1"))
        assert [e.id for e in entries] == ["t-1", "t-3"]
