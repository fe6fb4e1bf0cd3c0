from __future__ import annotations

import json

import pytest

from dp_browser.core.exceptions import UnknownDatasetError
from dp_browser.core.model import ELEMENT_PROPS_DATASET_KEY, DataSource, PickerType
from dp_browser.core.tree_builder import build_from_source
from dp_browser.services.registry import DataSourceRegistry, stringify_data

D1 = DataSource(id="d1", name="Dataset one")
STORED = DataSource(id="s1", name="Stored", storage_path="s1.json")


@pytest.fixture
def registry():
    return DataSourceRegistry()


def test_add_then_update_is_reflected_in_get_tree(registry):
    registry.add_source(D1, {"x": 1})
    before = build_from_source(registry.get_tree("d1")).nodes

    registry.update_source("d1", {"x": 2})

    tree = registry.get_tree("d1")
    assert json.loads(tree.value) == {"x": 2}
    assert tree.name == "Dataset one"
    assert tree.picker_type == PickerType.DEFAULT
    # nodes built earlier are untouched
    assert before[1].value == "1"


def test_get_tree_uses_one_space_indent(registry):
    registry.add_source(D1, {"x": [1]})

    assert registry.get_tree("d1").value == '{\n "x": [\n  1\n ]\n}'
    assert stringify_data(None) == ""
    assert stringify_data({}) == ""


def test_update_unknown_id_is_a_noop(registry):
    seen = []
    registry.subscribe(seen.append)

    registry.update_source("missing", {"x": 1})

    assert "missing" not in registry
    assert len(seen) == 1


def test_remove_source(registry):
    registry.add_source(D1, {"x": 1})

    registry.remove_source("d1")

    assert "d1" not in registry
    assert registry.get_tree("d1") is None
    assert registry.data_for_key("d1") is None
    with pytest.raises(UnknownDatasetError):
        registry["d1"]


def test_mapping_interface(registry):
    registry.add_source(D1, 1)
    registry.add_source(STORED, 2)

    assert list(registry) == ["d1", "s1"]
    assert len(registry) == 2
    assert registry["s1"] == STORED


def test_reserved_id_is_rejected(registry):
    with pytest.raises(ValueError):
        registry.add_source(DataSource(id=ELEMENT_PROPS_DATASET_KEY, name="x"), {})


def test_invalid_blob_registers_nothing(registry, caplog):
    caplog.set_level("WARNING")

    assert not registry.add_source_from_blob(D1, b"{not json")

    assert "d1" not in registry
    assert "invalid data" in caplog.text


def test_blob_is_registered_as_generic_data(registry):
    dataset = DataSource(id="d1", name="D", picker_type=PickerType.A11Y_PROPS)

    assert registry.add_source_from_blob(dataset, '{"a": 1}')

    assert registry.data_for_key("d1") == {"a": 1}
    assert registry["d1"].picker_type == PickerType.DEFAULT


def test_update_from_blob(registry):
    registry.add_source(D1, {"a": 1})

    assert registry.update_source_from_blob("d1", b'{"a": 2}')
    assert not registry.update_source_from_blob("d1", b"nope")
    assert registry.data_for_key("d1") == {"a": 2}


def test_has_data_by_storage_path_for_stored_datasets(registry):
    registry.add_source(STORED, {"a": 1})

    assert registry.has_data(STORED)
    # same file under another id still counts as loaded
    assert registry.has_data(DataSource(id="other", name="x", storage_path="s1.json"))
    assert not registry.has_data(DataSource(id="s1", name="x", storage_path="s1-v2.json"))


def test_has_data_by_id_for_inline_datasets(registry):
    registry.add_source(D1, None)

    assert registry.has_data(D1)
    assert not registry.has_data(DataSource(id="d2", name="x"))


def test_remove_forgets_storage_path(registry):
    registry.add_source(STORED, {"a": 1})
    registry.remove_source("s1")

    assert not registry.has_data(STORED)


def test_update_source_name(registry):
    registry.add_source(D1, {})

    registry.update_source_name("d1", "Renamed")

    assert registry["d1"].name == "Renamed"


def test_source_list_starts_with_element_graph(registry):
    registry.add_source(D1, {})

    sources = registry.get_source_list()

    assert [s.id for s in sources] == [ELEMENT_PROPS_DATASET_KEY, "d1"]
    assert sources[0].name == "Project elements"
    assert sources[0].picker_type == PickerType.PROJECT_ELEMENTS


def test_isolation_mode_switches_element_source(registry):
    registry.set_symbol_isolation_mode("sym1")

    tree = registry.get_tree(ELEMENT_PROPS_DATASET_KEY)
    assert tree.name == "Component elements"
    assert tree.symbol_id == "sym1"

    registry.exit_symbol_isolation_mode()
    assert registry.get_tree(ELEMENT_PROPS_DATASET_KEY).name == "Project elements"
    assert registry.isolated_symbol_id is None


def test_element_properties_are_read_live(registry):
    props = {"b": {"id": "b", "elementType": "Board"}}
    registry.set_element_properties(props)

    assert registry.data_for_key(ELEMENT_PROPS_DATASET_KEY) is props
    assert ELEMENT_PROPS_DATASET_KEY not in registry
    assert [s.id for s in registry.sources] == [ELEMENT_PROPS_DATASET_KEY]


def test_subscribers_receive_full_snapshots(registry):
    seen = []
    registry.subscribe(seen.append)

    registry.add_source(D1, {"x": 1})
    registry.add_source(STORED, [1])
    registry.update_source("d1", {"x": 2})
    registry.remove_source("s1")

    assert seen == [
        {},
        {"d1": {"x": 1}},
        {"d1": {"x": 1}, "s1": [1]},
        {"d1": {"x": 2}, "s1": [1]},
        {"d1": {"x": 2}},
    ]


def test_unsubscribe_stops_notifications(registry):
    seen = []
    unsubscribe = registry.subscribe(seen.append)

    unsubscribe()
    registry.add_source(D1, {})

    assert seen == [{}]


def test_failing_listener_does_not_break_others(registry):
    seen = []

    def broken(_snapshot):
        raise RuntimeError("boom")

    registry.subscribe(broken)
    registry.subscribe(seen.append)
    registry.add_source(D1, {"x": 1})

    assert seen[-1] == {"d1": {"x": 1}}


def test_snapshot_cannot_change_registry(registry):
    registry.add_source(D1, {"x": 1})

    snapshot = registry.get_loaded_data()
    snapshot["d1"] = "changed"

    assert registry.data_for_key("d1") == {"x": 1}


def test_loaded_data_blobs(registry):
    registry.add_source(D1, {"x": "é"})

    assert registry.get_loaded_data_blobs() == {"d1": '{"x": "é"}'.encode("utf-8")}


def test_reset_clears_everything(registry):
    registry.set_element_properties({"b": {}})
    registry.add_source(STORED, {})

    registry.reset()

    assert len(registry) == 0
    assert registry.get_element_properties() is None
    assert not registry.has_data(STORED)


def test_data_ref_from_id():
    assert DataSourceRegistry.data_ref_from_id("users.0.name") == "users"
    assert DataSourceRegistry.data_ref_from_id("") == ""
