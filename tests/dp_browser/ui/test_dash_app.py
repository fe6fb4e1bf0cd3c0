from __future__ import annotations

import json
from pathlib import Path

from dp_browser.core.model import ELEMENT_PROPS_DATASET_KEY, Binding
from dp_browser.ui.callbacks_editor import dataset_for_upload, decode_upload
from dp_browser.core.tree_state import TreeViewState
from dp_browser.ui.callbacks_tree import binding_for_click, build_tree, selected_path_for
from dp_browser.ui.config import AppConfig
from dp_browser.ui.dash_app import create_dash_app
from dp_browser.config.io import load_global_config
from dp_browser.services.registry import DataSourceRegistry
from dp_browser.services.resolver import BindingResolver
from dp_browser.core.model import DataSource


def _config_dir(tmp_path: Path) -> Path:
    root = tmp_path / "config"
    (root / "datasets").mkdir(parents=True)
    (root / "data").mkdir()
    (root / "global.json").write_text(json.dumps({"ui_title": "Picker", "default_dataset": "users"}))
    (root / "datasets" / "users.json").write_text(json.dumps({"id": "users", "name": "Users", "value": {"a": 1}}))
    (root / "datasets" / "stored.json").write_text(json.dumps({"id": "stored", "storage_path": "stored.json"}))
    (root / "data" / "stored.json").write_text(json.dumps({"b": [1]}))
    return root


def _ctx(tmp_path: Path) -> AppConfig:
    root = _config_dir(tmp_path)
    registry = DataSourceRegistry()
    registry.add_source(DataSource(id="users", name="Users"), {"a": {"b": 1}})
    return AppConfig(
        config_root=root,
        global_config=load_global_config(root),
        registry=registry,
        resolver=BindingResolver(registry),
    )


def test_create_dash_app(tmp_path):
    app = create_dash_app(_config_dir(tmp_path))

    assert app.title == "Picker"
    assert app.layout is not None
    assert len(app.callback_map) > 0


def test_default_source(tmp_path):
    ctx = _ctx(tmp_path)
    assert ctx.default_source_id == "users"

    ctx.global_config.default_dataset = "gone"
    assert ctx.default_source_id == ELEMENT_PROPS_DATASET_KEY


def test_build_tree_for_known_and_unknown_sources(tmp_path):
    ctx = _ctx(tmp_path)

    dataset, result = build_tree(ctx, "users", "a.b")
    assert dataset.name == "Users"
    assert [n.id for n in result.nodes] == ["users", "a", "a.b"]

    dataset, result = build_tree(ctx, "nope")
    assert dataset is None
    assert result.nodes == ()


def test_selected_path_only_for_the_active_source():
    binding = Binding("users", "a.b")

    assert selected_path_for(binding, "users") == "a.b"
    assert selected_path_for(binding, "other") is None
    assert selected_path_for(None, "users") is None


def test_clicked_root_binds_the_whole_source(tmp_path):
    ctx = _ctx(tmp_path)
    ctx.registry.update_source("users", {"users": {"name": "Ada"}})
    _, result = build_tree(ctx, "users")
    state = TreeViewState.from_build("users", result)

    root_id = result.nodes[0].id
    assert root_id == "#users"
    assert binding_for_click(state, "users", root_id) == Binding("users", "users").to_dict()
    assert binding_for_click(state, "users", "users.name") == Binding("users", "users.name").to_dict()
    assert binding_for_click(state, "users", None) is None


def test_decode_upload():
    assert decode_upload("data:application/json;base64,eyJhIjogMX0=") == b'{"a": 1}'


def test_dataset_for_upload_avoids_id_clashes(tmp_path):
    ctx = _ctx(tmp_path)

    first = dataset_for_upload(ctx, "users.json")
    assert first.id == "users-2"
    assert first.name == "users.json"
    assert first.storage_path is None
