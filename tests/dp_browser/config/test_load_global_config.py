import json
from pathlib import Path

import pytest

from dp_browser.config import load_global_config
from dp_browser.config.model import DatasetConfig
from dp_browser.core.exceptions import ConfigError
from dp_browser.core.model import PickerType


def _write(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


def test_load_global_config_from_config_dir(tmp_path):
    # root/
    #   global.json
    #   datasets/
    #     users.json
    #     products.json
    config_root = tmp_path / "config"
    _write(config_root / "global.json", {
        "ui_title": "Test Picker",
        "default_dataset": "users",
        "elements_file": "elements.json",
        "search_debounce_ms": 250,
    })
    _write(config_root / "datasets" / "users.json", {"id": "users", "name": "Users", "value": {"a": 1}})
    _write(config_root / "datasets" / "products.json", {
        "name": "Products",
        "storage_path": "products.json",
        "picker_type": "A11yProps",
    })

    cfg = load_global_config(config_root)

    assert cfg.ui_title == "Test Picker"
    assert cfg.default_dataset == "users"
    assert cfg.search_debounce_ms == 250
    assert cfg.storage_root == (config_root / "data").resolve()
    assert cfg.elements_file == (config_root / "elements.json").resolve()

    by_id = {d.id: d for d in cfg.datasets}
    assert set(by_id) == {"users", "products"}
    assert by_id["users"].has_inline_value
    assert by_id["users"].value == {"a": 1}

    # id falls back to the file name
    products = by_id["products"].to_data_source()
    assert products.storage_path == "products.json"
    assert products.picker_type == PickerType.A11Y_PROPS
    assert products.is_stored


def test_defaults(tmp_path):
    _write(tmp_path / "global.json", {})

    cfg = load_global_config(tmp_path)

    assert cfg.ui_title == "Data Picker"
    assert cfg.datasets == []
    assert cfg.elements_file is None
    assert cfg.search_debounce_ms == 100


def test_missing_global_json(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_global_config(tmp_path)


@pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
def test_invalid_global_json(tmp_path, content):
    (tmp_path / "global.json").write_text(content)

    with pytest.raises(ConfigError):
        load_global_config(tmp_path)


def test_bad_debounce_value(tmp_path):
    _write(tmp_path / "global.json", {"search_debounce_ms": "soon"})

    with pytest.raises(ConfigError):
        load_global_config(tmp_path)


def test_bad_dataset_files_are_skipped(tmp_path):
    _write(tmp_path / "global.json", {})
    _write(tmp_path / "datasets" / "good.json", {"value": []})
    _write(tmp_path / "datasets" / "no_data.json", {"name": "Nothing"})
    _write(tmp_path / "datasets" / "bad_type.json", {"value": 1, "picker_type": "Spreadsheet"})
    (tmp_path / "datasets" / "broken.json").write_text("{")

    cfg = load_global_config(tmp_path)

    assert [d.id for d in cfg.datasets] == ["good"]


def test_duplicate_dataset_ids(tmp_path):
    _write(tmp_path / "global.json", {})
    _write(tmp_path / "datasets" / "a.json", {"id": "same", "value": 1})
    _write(tmp_path / "datasets" / "b.json", {"id": "same", "value": 2})

    with pytest.raises(ConfigError):
        load_global_config(tmp_path)


def test_dataset_config_must_be_an_object(tmp_path):
    with pytest.raises(ConfigError):
        DatasetConfig.from_raw([1], source_path=tmp_path / "x.json", index=0)
