"""Tests for persisted view state."""

import json

import pytest
from pydantic import ValidationError
from src.models.view_state import ColumnState, SortModelItem, Theme, ViewState
from src.sync.view_state import (
    COLUMN_STATE_KEY,
    SORT_MODEL_KEY,
    THEME_KEY,
    ViewStateStore,
)


@pytest.fixture
def store(tmp_path):
    return ViewStateStore(tmp_path / "view" / "state.json")


@pytest.mark.unit
def test_missing_file_loads_defaults(store):
    state = store.load()

    assert state == ViewState()
    assert state.theme is Theme.LIGHT


@pytest.mark.unit
def test_save_and_reload(store):
    state = ViewState(
        theme=Theme.DARK,
        column_state=[
            ColumnState(col_id="task_name", width=240, pinned="left"),
            ColumnState(col_id="status", hide=True),
        ],
        filter_model={"status": {"filterType": "set", "values": ["In Progress"]}},
        sort_model=[SortModelItem(col_id="due_date", sort="asc")],
    )

    store.save(state)

    assert ViewStateStore(store.path).load() == state
    raw = json.loads(store.path.read_text())
    assert raw[COLUMN_STATE_KEY][0]["colId"] == "task_name"
    assert raw[THEME_KEY] == "dark"


@pytest.mark.unit
def test_corrupt_file_loads_defaults(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json")

    assert store.load() == ViewState()


@pytest.mark.unit
def test_invalid_key_resets_only_that_key(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps({
        THEME_KEY: "purple",
        SORT_MODEL_KEY: [{"colId": "priority", "sort": "desc"}],
    }))

    state = store.load()

    assert state.theme is Theme.LIGHT
    assert state.sort_model == [SortModelItem(col_id="priority", sort="desc")]


@pytest.mark.unit
def test_set_and_get_single_key(store):
    store.set(SORT_MODEL_KEY, [{"colId": "progress", "sort": "asc"}])

    assert store.get(SORT_MODEL_KEY) == [{"colId": "progress", "sort": "asc"}]
    assert store.get(THEME_KEY) is None


@pytest.mark.unit
def test_set_rejects_invalid_value(store):
    with pytest.raises(ValidationError):
        store.set(SORT_MODEL_KEY, [{"colId": "progress", "sort": "sideways"}])

    assert not store.path.exists()


@pytest.mark.unit
def test_unknown_key(store):
    with pytest.raises(KeyError):
        store.get("grid_density")
    with pytest.raises(KeyError):
        store.set("grid_density", "compact")


@pytest.mark.unit
def test_toggle_theme(store):
    assert store.toggle_theme() is Theme.DARK
    assert store.load().theme is Theme.DARK
    assert store.toggle_theme() is Theme.LIGHT


@pytest.mark.unit
def test_clear(store):
    store.set(THEME_KEY, "dark")

    store.clear()

    assert store.load() == ViewState()
    store.clear()


@pytest.mark.unit
def test_default_path_from_settings(configured_env):
    store = ViewStateStore()

    assert store.path == configured_env / "view.json"
