from __future__ import annotations

import base64
import binascii
import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

import dash
from dash import Input, Output, State

from dp_browser.core.exceptions import DpBrowserError
from dp_browser.core.model import ELEMENT_PROPS_DATASET_KEY, Binding, DataSource
from dp_browser.services.registry import stringify_data
from dp_browser.services.resolver import commit_edit
from dp_browser.ui.helpers import STATUS_COLOURS, binding_summary, source_options
from dp_browser.ui.ids import IDs

if TYPE_CHECKING:
    from dp_browser.ui.config import AppConfig

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = "uploads"


def decode_upload(contents: str) -> bytes:
    """Payload of a dcc.Upload data URL"""
    try:
        _, b64 = contents.split(",", 1)
        return base64.b64decode(b64)
    except (ValueError, binascii.Error) as e:
        raise ValueError(f"Unreadable upload: {e}") from e


def dataset_for_upload(ctx: AppConfig, filename: str) -> DataSource:
    stem = PurePosixPath(filename).stem or "upload"
    dataset_id = stem
    n = 2
    while dataset_id in ctx.registry or dataset_id == ELEMENT_PROPS_DATASET_KEY:
        dataset_id = f"{stem}-{n}"
        n += 1
    storage_path = f"{UPLOAD_PREFIX}/{dataset_id}.json" if ctx.storage is not None else None
    return DataSource(id=dataset_id, name=filename, storage_path=storage_path)


def register_editor_callbacks(app: dash.Dash, ctx: AppConfig) -> None:
    # ---------------------------------------------------------
    # Bound value card
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Control.BINDING_PATH, "children"),
        Output(IDs.Control.BINDING_VALUE, "children"),
        Output(IDs.Control.BINDING_STATUS, "children"),
        Output(IDs.Control.BINDING_STATUS, "color"),
        Input(IDs.Store.BINDING, "data"),
        Input(IDs.Store.DATA_VERSION, "data"),
    )
    def update_binding_card(binding_data, _version):
        label, value, status = binding_summary(ctx.resolver, Binding.from_dict(binding_data))
        return label, value, status, STATUS_COLOURS[status]

    # ---------------------------------------------------------
    # Editor contents follow the active source
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Control.EDITOR_TEXT, "value"),
        Output(IDs.Control.EDITOR_TEXT, "disabled"),
        Output(IDs.Control.EDITOR_COMMIT_BTN, "disabled"),
        Input(IDs.Control.SOURCE_SELECT, "value"),
        Input(IDs.Store.DATA_VERSION, "data"),
    )
    def load_editor(source_id, _version):
        # The element graph is owned by the host and is read only here
        read_only = not source_id or source_id == ELEMENT_PROPS_DATASET_KEY
        text = stringify_data(ctx.registry.data_for_key(source_id)) if source_id else ""
        return text, read_only, read_only

    # ---------------------------------------------------------
    # Commit edited JSON
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Control.EDITOR_STATUS, "children"),
        Output(IDs.Store.DATA_VERSION, "data"),
        Output(IDs.Store.BINDING, "data", allow_duplicate=True),
        Input(IDs.Control.EDITOR_COMMIT_BTN, "n_clicks"),
        State(IDs.Control.EDITOR_TEXT, "value"),
        State(IDs.Control.SOURCE_SELECT, "value"),
        State(IDs.Store.BINDING, "data"),
        State(IDs.Store.DATA_VERSION, "data"),
        prevent_initial_call=True,
    )
    def commit_editor(n_clicks, text, source_id, binding_data, version):
        if not n_clicks:
            return dash.no_update, dash.no_update, dash.no_update

        binding = Binding.from_dict(binding_data)
        try:
            kept = commit_edit(ctx.registry, source_id, text or "", binding)
        except DpBrowserError as e:
            logger.warning("Edit rejected", extra={"dataset_id": source_id, "error": str(e)})
            return f"Not saved: {e}", dash.no_update, dash.no_update

        dataset = ctx.registry.dataset_for_key(source_id)
        if ctx.storage is not None and dataset is not None and dataset.is_stored:
            blob = ctx.registry.get_loaded_data_blobs()[source_id]
            ctx.storage.write_bytes(dataset.storage_path, blob)
            logger.info("Stored dataset written", extra={"dataset_id": source_id, "storage_path": dataset.storage_path})

        binding_out = kept.to_dict() if kept else None
        return "Saved", (version or 0) + 1, binding_out

    # ---------------------------------------------------------
    # Upload a new JSON dataset
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Control.UPLOAD_STATUS, "children"),
        Output(IDs.Control.SOURCE_SELECT, "options"),
        Input(IDs.Control.UPLOAD, "contents"),
        State(IDs.Control.UPLOAD, "filename"),
        prevent_initial_call=True,
    )
    def upload_dataset(contents, filename):
        if not contents:
            return dash.no_update, dash.no_update
        filename = filename or "upload.json"

        try:
            blob = decode_upload(contents)
        except ValueError as e:
            return str(e), dash.no_update

        dataset = dataset_for_upload(ctx, filename)
        if not ctx.registry.add_source_from_blob(dataset, blob):
            return f"{filename} is not valid JSON", dash.no_update

        if dataset.is_stored:
            ctx.storage.write_bytes(dataset.storage_path, blob)
        return f"Added {dataset.name}", source_options(ctx.registry.get_source_list())
