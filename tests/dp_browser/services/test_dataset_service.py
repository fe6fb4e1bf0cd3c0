from __future__ import annotations

import json

import pytest

from dp_browser.config.model import DatasetConfig, GlobalConfig
from dp_browser.core.exceptions import ConfigError
from dp_browser.core.model import ELEMENT_PROPS_DATASET_KEY, DataSource
from dp_browser.services.dataset_service import (
    load_element_properties,
    load_stored_dataset,
    populate_registry,
)
from dp_browser.services.registry import DataSourceRegistry
from dp_browser.services.storage import LocalFileSystemStorage

STORED = DataSource(id="products", name="Products", storage_path="products.json")


@pytest.fixture
def storage(tmp_path):
    storage = LocalFileSystemStorage(tmp_path / "data")
    storage.write_bytes("products.json", json.dumps({"items": [1, 2]}).encode("utf-8"))
    return storage


def test_load_stored_dataset(storage):
    registry = DataSourceRegistry()

    assert load_stored_dataset(registry, storage, STORED)
    assert registry.data_for_key("products") == {"items": [1, 2]}


def test_load_stored_dataset_skips_loaded_paths(storage):
    registry = DataSourceRegistry()
    registry.add_source(STORED, {"already": True})

    assert load_stored_dataset(registry, storage, STORED)
    assert registry.data_for_key("products") == {"already": True}


def test_load_stored_dataset_missing_file(storage, caplog):
    registry = DataSourceRegistry()
    missing = DataSource(id="m", name="M", storage_path="missing.json")

    assert not load_stored_dataset(registry, storage, missing)
    assert "m" not in registry
    assert "Stored dataset file missing" in caplog.text


def test_load_stored_dataset_requires_storage_path(storage):
    with pytest.raises(ValueError):
        load_stored_dataset(DataSourceRegistry(), storage, DataSource(id="x", name="X"))


def test_load_element_properties(tmp_path):
    path = tmp_path / "elements.json"
    path.write_text(json.dumps({"b": {"id": "b"}}))

    assert load_element_properties(path) == {"b": {"id": "b"}}

    path.write_text("[1, 2]")
    with pytest.raises(ConfigError):
        load_element_properties(path)


def test_populate_registry(tmp_path, storage):
    elements = tmp_path / "elements.json"
    elements.write_text(json.dumps({"b": {"id": "b", "elementType": "Board"}}))

    global_config = GlobalConfig(
        ui_title="Test",
        datasets=[
            DatasetConfig(raw={"id": "users", "name": "Users", "value": {"a": 1}}, source_path=tmp_path / "users.json", index=0),
            DatasetConfig(raw={"id": "products", "name": "Products", "storage_path": "products.json"}, source_path=tmp_path / "products.json", index=1),
            DatasetConfig(raw={"id": "lost", "storage_path": "lost.json"}, source_path=tmp_path / "lost.json", index=2),
        ],
        elements_file=elements,
        isolated_symbol_id="sym1",
    )

    registry = populate_registry(DataSourceRegistry(), global_config, storage)

    assert list(registry) == ["users", "products"]
    assert registry.data_for_key("users") == {"a": 1}
    assert registry.data_for_key("products") == {"items": [1, 2]}
    assert registry.data_for_key(ELEMENT_PROPS_DATASET_KEY) == {"b": {"id": "b", "elementType": "Board"}}
    assert registry.isolated_symbol_id == "sym1"
