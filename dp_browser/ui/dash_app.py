from __future__ import annotations

import logging
from pathlib import Path

import dash_bootstrap_components as dbc
from dash import Dash

from dp_browser.config.io import load_global_config
from dp_browser.services.dataset_service import populate_registry
from dp_browser.services.registry import DataSourceRegistry
from dp_browser.services.resolver import BindingResolver
from dp_browser.services.storage import LocalFileSystemStorage
from dp_browser.ui.callbacks_editor import register_editor_callbacks
from dp_browser.ui.callbacks_tree import register_tree_callbacks
from dp_browser.ui.config import AppConfig
from dp_browser.ui.layout import build_layout

logger = logging.getLogger(__name__)


def create_dash_app(config_root: Path | str = Path("config")) -> Dash:
    config_root = Path(config_root)

    # 1) Load Config
    global_config = load_global_config(config_root)

    # 2) Initialize Service Layer
    # LocalFileSystemStorage creates the directory if needed
    storage = LocalFileSystemStorage(global_config.storage_root) if global_config.storage_root else None
    registry = populate_registry(DataSourceRegistry(), global_config, storage)
    resolver = BindingResolver(registry)

    # 3) App Context
    ctx = AppConfig(
        config_root=config_root,
        global_config=global_config,
        registry=registry,
        resolver=resolver,
        storage=storage,
    )
    ctx.validate()

    assets_path = Path(__file__).parent / "assets"

    app = Dash(
        __name__,
        external_stylesheets=[dbc.themes.FLATLY],
        assets_folder=str(assets_path),
        suppress_callback_exceptions=True,
    )
    app.title = global_config.ui_title
    app.layout = build_layout(ctx)

    # Register callbacks
    register_tree_callbacks(app, ctx)
    register_editor_callbacks(app, ctx)

    logger.info("Dash app created", extra={"config_root": str(config_root), "n_sources": len(registry) + 1})
    return app
