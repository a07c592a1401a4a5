from __future__ import annotations

import pytest

from examtrack.core.entity_store import EntityStore
from examtrack.core.model import (
    LearningStatus,
    MediaFolder,
    MediaItem,
    MediaType,
    UserRequirementState,
)
from tests.remote_utils import sequential_ids

pytestmark = pytest.mark.core


@pytest.fixture
def store(catalog):
    return EntityStore(catalog, id_factory=sequential_ids("e"))


def test_get_state_returns_default_without_creating(store):
    state = store.get_state(1)
    assert state == UserRequirementState(req_id=1)
    assert 1 not in store.states()


def test_get_state_returns_a_copy(store):
    store.set_notes(1, "hip escape first")
    copy = store.get_state(1)
    copy.notes = "changed"
    assert store.get_state(1).notes == "hip escape first"


def test_set_status_validates_value_and_requirement(store):
    assert store.set_status(2, "learning").status is LearningStatus.LEARNING
    assert store.set_status(2, "mastered") is None
    assert store.set_status(99, LearningStatus.DONE) is None
    assert store.get_state(2).status is LearningStatus.LEARNING


def test_add_media_assigns_ids_and_increasing_ordinals(store):
    first = store.add_media(1, "video", "Drill", "https://v/1")
    second = store.add_media(1, MediaType.LINK, "Article", "https://l/1", notes="read")
    assert (first.id, second.id) == ("e1", "e2")
    assert [m.display_order for m in store.get_state(1).media] == [1, 2]
    assert second.notes == "read"


def test_add_media_rejects_unknown_folder_type_or_requirement(store):
    assert store.add_media(1, "video", "t", "u", folder_id="nope") is None
    assert store.add_media(1, "podcast", "t", "u") is None
    assert store.add_media(99, "video", "t", "u") is None
    assert store.get_state(1).media == []


def test_update_media_is_partial_and_rejects_unknown_folder(store):
    folder = store.create_folder(1, "Drills")
    item = store.add_media(1, "video", "t", "u")
    updated = store.update_media(1, item.id, title="New", folder_id=folder.id)
    assert updated.title == "New"
    assert updated.url == "u"
    assert updated.folder_id == folder.id
    assert store.update_media(1, item.id, title="Other", folder_id="missing") is None
    assert store.get_state(1).media[0].title == "New"
    assert store.update_media(1, item.id, folder_id=None).folder_id is None
    assert store.update_media(1, "missing", title="x") is None


def test_remove_media_is_idempotent(store):
    item = store.add_media(1, "video", "t", "u")
    assert store.remove_media(1, item.id) is not None
    assert store.remove_media(1, item.id) is None
    assert store.get_state(1).media == []


def test_remove_folder_moves_media_to_root(store):
    folder = store.create_folder(3, "Variations")
    inside = store.add_media(3, "video", "a", "u", folder_id=folder.id)
    outside = store.add_media(3, "video", "b", "u")
    removed, moved = store.remove_folder(3, folder.id)
    assert removed.id == folder.id
    assert [item.id for item in moved] == [inside.id]
    state = store.get_state(3)
    assert state.folders == []
    assert {item.id for item in state.media} == {inside.id, outside.id}
    assert all(item.folder_id is None for item in state.media)
    assert store.remove_folder(3, folder.id) is None


def test_create_folder_rejects_blank_name(store):
    assert store.create_folder(1, "  ") is None
    assert 1 not in store.states()


def test_load_drops_unknown_requirements_and_dangling_folders(store):
    store.load(
        [
            UserRequirementState(req_id=99),
            UserRequirementState(
                req_id=2,
                folders=[MediaFolder(id="f1", name="F")],
                media=[
                    MediaItem(id="m2", type=MediaType.VIDEO, title="b", url="u", display_order=2),
                    MediaItem(
                        id="m1",
                        type=MediaType.VIDEO,
                        title="a",
                        url="u",
                        folder_id="gone",
                        display_order=1,
                    ),
                ],
            ),
        ]
    )
    assert set(store.states()) == {2}
    media = store.get_state(2).media
    assert [item.id for item in media] == ["m1", "m2"]
    assert media[0].folder_id is None


def test_failed_add_media_does_not_create_state(store):
    assert store.add_media(2, "video", "t", "u", folder_id="nope") is None
    assert 2 not in store.states()
    item = store.add_media(2, "video", "t", "u")
    assert item is not None
    assert store.get_state(2).media == [item]
