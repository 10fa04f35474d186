import os

import pytest

from data_client import LocalTableStore


def test_store_creates_directory_lazily(tmp_path):
    base = tmp_path / "lazy"
    store = LocalTableStore(str(base))
    assert store.select("projects") == []
    assert not base.exists()
    store.insert("projects", {"title": "A"})
    assert os.path.exists(base / "projects.json")


def test_insert_assigns_id_and_timestamps(store):
    row = store.insert("projects", {"title": "A"})[0]
    assert row["id"] and row["created_at"] and row["updated_at"]


def test_select_filters_orders_and_limits(store):
    store.insert("scenes", [
        {"project_id": "p1", "scene_number": 2},
        {"project_id": "p1", "scene_number": 1},
        {"project_id": "p2", "scene_number": 3},
        {"project_id": "p1", "scene_number": None},
    ])
    rows = store.select("scenes", {"project_id": "p1"}, order="scene_number")
    assert [r["scene_number"] for r in rows] == [1, 2, None]
    rows = store.select("scenes", {"project_id": "p1"}, order="scene_number", descending=True, limit=1)
    assert rows[0]["scene_number"] == 2


def test_select_with_in_filter(store):
    store.insert("storyboards", [{"scene_id": "a"}, {"scene_id": "b"}, {"scene_id": "c"}])
    rows = store.select("storyboards", in_filters={"scene_id": ["a", "c"]})
    assert sorted(r["scene_id"] for r in rows) == ["a", "c"]


def test_update_and_delete(store):
    row = store.insert("projects", {"title": "A"})[0]
    updated = store.update("projects", {"title": "B"}, {"id": row["id"]})
    assert updated[0]["title"] == "B"
    assert store.delete("projects", {"id": row["id"]})[0]["id"] == row["id"]
    assert store.select("projects") == []


def test_update_and_delete_require_filters(store):
    with pytest.raises(ValueError):
        store.update("projects", {"title": "B"}, {})
    with pytest.raises(ValueError):
        store.delete("projects")


def test_upsert_merges_on_conflict_columns(store):
    first = store.upsert("project_content", {"project_id": "p", "content_type": "premise", "content": {"text": "a"}},
                         on_conflict=("project_id", "content_type"))
    second = store.upsert("project_content", {"project_id": "p", "content_type": "premise", "content": {"text": "b"}},
                          on_conflict=("project_id", "content_type"))
    assert first["id"] == second["id"]
    assert len(store.select("project_content")) == 1
    assert store.select_one("project_content", {"project_id": "p"})["content"] == {"text": "b"}


def test_rejects_unsafe_table_names(store):
    with pytest.raises(ValueError):
        store.select("../etc")


def test_returned_rows_are_copies(store):
    store.insert("scenes", {"characters": ["Ana"]})
    rows = store.select("scenes")
    rows[0]["characters"].append("Bob")
    assert store.select("scenes")[0]["characters"] == ["Ana"]
