"""Tests for the sync reconciler."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from errors import StorageError, ValidationError
from models import POICreate
from store import POIStore
from sync import SyncReconciler


def _seed(store, user="u1"):
    a = store.create(user, POICreate(name="A", latitude=10, longitude=10))
    b = store.create(user, POICreate(name="B", latitude=20, longitude=20))
    return a, b


def test_create_update_delete(store):
    a, b = _seed(store)
    batch = [
        {"id": a, "name": "A2", "latitude": 0, "longitude": 0},
        {"name": "C", "latitude": 1, "longitude": 1},
    ]
    result = SyncReconciler(store).sync_pois("u1", batch)

    summary = result.summary()
    assert (summary.created, summary.updated, summary.deleted, summary.errors) == (1, 1, 1, 0)
    assert result.deleted == [b]
    assert result.updated[0].name == "A2"
    assert (result.updated[0].latitude, result.updated[0].longitude) == (0, 0)
    assert result.created[0].name == "C"
    assert result.created[0].user_id == "u1"
    assert sorted(p.name for p in result.final_state) == ["A2", "C"]


def test_update_replaces_fields_with_defaults(store):
    a = store.create("u1", POICreate(
        name="A", description="old", latitude=1, longitude=1, category="food", is_visited=True,
    ))
    result = SyncReconciler(store).sync_pois("u1", [
        {"id": a, "name": "A", "latitude": 1, "longitude": 1, "client_id": "c-1"},
    ])
    poi = result.updated[0]
    assert poi.description == ""
    assert poi.category == "other"
    assert poi.is_visited is False
    assert poi.client_id == "c-1"


def test_invalid_item_is_isolated(store):
    a, b = _seed(store)
    batch = [
        {"id": a, "name": "A", "latitude": 10, "longitude": 10},
        {"id": b, "name": "B", "latitude": 20, "longitude": 20},
        {"latitude": 5, "longitude": 5},
        {"name": "D", "latitude": 5, "longitude": 5},
    ]
    result = SyncReconciler(store).sync_pois("u1", batch)

    assert len(result.errors) == 1
    assert result.errors[0].poi == {"latitude": 5, "longitude": 5}
    assert result.errors[0].error == "Name, latitude, and longitude are required"
    assert [p.name for p in result.created] == ["D"]
    assert len(result.updated) == 2
    assert result.deleted == []


@pytest.mark.parametrize("item", [
    {"name": "X", "latitude": 91, "longitude": 0},
    {"name": "X", "latitude": 0, "longitude": -181},
    {"name": "X", "latitude": "north", "longitude": 0},
    {"name": "X", "latitude": 0},
    {"name": "", "latitude": 0, "longitude": 0},
    {"name": 42, "latitude": 0, "longitude": 0},
])
def test_invalid_items_rejected(store, item):
    result = SyncReconciler(store).sync_pois("u1", [item])
    assert len(result.errors) == 1
    assert result.errors[0].poi == item
    assert result.created == []
    assert store.find_all_by_user("u1") == []


def test_oversized_coordinate_is_isolated(store):
    batch = [
        {"name": "big", "latitude": 10**400, "longitude": 0},
        {"name": "ok", "latitude": 0, "longitude": 0},
    ]
    result = SyncReconciler(store).sync_pois("u1", batch)
    assert len(result.errors) == 1
    assert result.errors[0].error == "Invalid latitude or longitude values"
    assert [p.name for p in result.created] == ["ok"]


def test_non_object_item(store):
    result = SyncReconciler(store).sync_pois("u1", [42, {"name": "ok", "latitude": 0, "longitude": 0}])
    assert result.errors[0].error == "POI must be an object"
    assert len(result.created) == 1


def test_invalid_item_with_id_is_not_deleted(store):
    a, b = _seed(store)
    batch = [
        {"id": a, "name": "", "latitude": 10, "longitude": 10},
        {"id": b, "name": "B", "latitude": 20, "longitude": 20},
    ]
    result = SyncReconciler(store).sync_pois("u1", batch)
    assert result.deleted == []
    assert [p.id for p in result.updated] == [b]
    assert store.find_by_id(a).name == "A"


def test_string_ids_match_existing(store):
    a, _ = _seed(store)
    result = SyncReconciler(store).sync_pois("u1", [{"id": str(a), "name": "A2", "latitude": 0, "longitude": 0}])
    assert [p.id for p in result.updated] == [a]
    assert result.created == []
    assert len(result.deleted) == 1


def test_integral_float_ids_match_existing(store):
    a, b = _seed(store)
    batch = [
        {"id": float(a), "name": "A2", "latitude": 0, "longitude": 0},
        {"id": b + 0.5, "name": "B-ish", "latitude": 0, "longitude": 0},
    ]
    result = SyncReconciler(store).sync_pois("u1", batch)
    assert [p.id for p in result.updated] == [a]
    assert [p.name for p in result.created] == ["B-ish"]
    assert result.deleted == [b]
    assert store.find_by_id(a).name == "A2"


def test_unknown_or_foreign_id_creates(store):
    other = store.create("u2", POICreate(name="theirs", latitude=0, longitude=0))
    batch = [
        {"id": 9999, "name": "X", "latitude": 0, "longitude": 0},
        {"id": other, "name": "mine now", "latitude": 0, "longitude": 0},
    ]
    result = SyncReconciler(store).sync_pois("u1", batch)
    assert len(result.created) == 2
    assert all(p.user_id == "u1" for p in result.created)
    assert store.find_by_id(other).name == "theirs"


def test_empty_batch_deletes_everything(store):
    a, b = _seed(store)
    store.create("u2", POICreate(name="untouched", latitude=0, longitude=0))
    result = SyncReconciler(store).sync_pois("u1", [])
    assert sorted(result.deleted) == sorted([a, b])
    assert result.final_state == []
    assert len(store.find_all_by_user("u2")) == 1


def test_second_identical_sync_rewrites(store):
    reconciler = SyncReconciler(store)
    first = reconciler.sync_pois("u1", [
        {"name": "A", "latitude": 1, "longitude": 1, "client_id": "a"},
        {"name": "B", "latitude": 2, "longitude": 2, "client_id": "b"},
    ])
    assert first.summary().created == 2

    batch = [p.model_dump() for p in first.final_state]
    second = reconciler.sync_pois("u1", batch)

    summary = second.summary()
    assert (summary.created, summary.updated, summary.deleted, summary.errors) == (0, 2, 0, 0)
    before = {p.id: p.updated_at for p in first.final_state}
    assert all(p.updated_at > before[p.id] for p in second.final_state)


def test_is_visited_truthiness(store):
    batch = [
        {"name": "yes", "latitude": 0, "longitude": 0, "is_visited": "yes"},
        {"name": "one", "latitude": 0, "longitude": 0, "is_visited": 1},
        {"name": "zero", "latitude": 0, "longitude": 0, "is_visited": 0},
        {"name": "blank", "latitude": 0, "longitude": 0, "is_visited": ""},
    ]
    result = SyncReconciler(store).sync_pois("u1", batch)
    visited = {p.name: p.is_visited for p in result.created}
    assert visited == {"yes": True, "one": True, "zero": False, "blank": False}


def test_batch_must_be_list(store):
    with pytest.raises(ValidationError):
        SyncReconciler(store).sync_pois("u1", {"name": "A"})
    with pytest.raises(ValidationError):
        SyncReconciler(store).sync_pois("u1", None)


class FlakyStore(POIStore):
    """Fails writes for chosen ids / names."""

    fail_update_ids: set = set()
    fail_create_names: set = set()
    fail_delete_ids: set = set()

    def create(self, user_id, data):
        if data.name in self.fail_create_names:
            raise StorageError("disk full")
        return super().create(user_id, data)

    def update(self, poi_id, patch):
        if poi_id in self.fail_update_ids:
            raise StorageError("locked")
        return super().update(poi_id, patch)

    def delete(self, poi_id):
        if poi_id in self.fail_delete_ids:
            raise StorageError("locked")
        return super().delete(poi_id)


def test_storage_failures_are_isolated(db):
    flaky = FlakyStore(db)
    a = flaky.create("u1", POICreate(name="A", latitude=0, longitude=0))
    b = flaky.create("u1", POICreate(name="B", latitude=0, longitude=0))
    c = flaky.create("u1", POICreate(name="C", latitude=0, longitude=0))
    d = flaky.create("u1", POICreate(name="D", latitude=0, longitude=0))
    flaky.fail_create_names = {"bad"}
    flaky.fail_update_ids = {a}
    flaky.fail_delete_ids = {c}

    batch = [
        {"name": "bad", "latitude": 0, "longitude": 0},
        {"name": "good", "latitude": 0, "longitude": 0},
        {"id": a, "name": "A2", "latitude": 0, "longitude": 0},
        {"id": b, "name": "B2", "latitude": 0, "longitude": 0},
    ]
    result = SyncReconciler(flaky).sync_pois("u1", batch)

    assert [p.name for p in result.created] == ["good"]
    assert [p.name for p in result.updated] == ["B2"]
    assert result.deleted == [d]
    assert len(result.errors) == 3
    assert result.errors[0].poi["name"] == "bad"
    assert result.errors[1].poi["id"] == a
    assert result.errors[2].poi_id == c
    assert result.errors[2].error == "locked"
    assert sorted(p.name for p in result.final_state) == ["A", "B2", "C", "good"]


def test_initial_load_failure_propagates(db):
    class BrokenStore(POIStore):
        def find_all_by_user(self, user_id):
            raise StorageError("unreachable")

    with pytest.raises(StorageError):
        SyncReconciler(BrokenStore(db)).sync_pois("u1", [])
