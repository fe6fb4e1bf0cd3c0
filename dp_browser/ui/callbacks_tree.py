from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Tuple

import dash
from dash import ALL, Input, Output, State

from dp_browser.core.exceptions import DatasetParseError
from dp_browser.core.model import Binding, DataSource
from dp_browser.core.tree_builder import BuildResult, binding_path, build_from_source, has_content, node_id_for_path
from dp_browser.core.tree_state import TreeViewState
from dp_browser.ui.helpers import render_tree, source_summary
from dp_browser.ui.ids import IDs

if TYPE_CHECKING:
    from dp_browser.ui.config import AppConfig

logger = logging.getLogger(__name__)

EMPTY_RESULT = BuildResult(nodes=(), default_expanded_ids=())


def selected_path_for(binding: Optional[Binding], source_id: str) -> Optional[str]:
    if binding is None or binding.dataset_id != source_id:
        return None
    return binding.lookup_path


def build_tree(ctx: AppConfig, source_id: str, selected_id: Optional[str] = None) -> Tuple[Optional[DataSource], BuildResult]:
    """Rebuild the tree of one source from the registry's current data"""
    source = ctx.registry.get_tree(source_id)
    if source is None:
        return None, EMPTY_RESULT
    try:
        result = build_from_source(source, selected_id)
    except DatasetParseError:
        logger.exception("Could not build tree", extra={"dataset_id": source_id})
        result = EMPTY_RESULT
    return ctx.registry.dataset_for_key(source_id), result


def binding_for_click(state: TreeViewState, source_id: str, new_selected: Optional[str]) -> Optional[dict]:
    """Binding stored after the content of a selectable node was clicked"""
    if not new_selected:
        return None
    node = next((n for n in state.nodes if n.id == new_selected), None)
    lookup_path = binding_path(node) if node is not None else new_selected
    return Binding(source_id, lookup_path).to_dict()


def register_tree_callbacks(app: dash.Dash, ctx: AppConfig) -> None:
    # ---------------------------------------------------------
    # Tree state: source switch, search, clicks, data changes
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Store.TREE_STATE, "data"),
        Output(IDs.Store.BINDING, "data"),
        Input(IDs.Control.SOURCE_SELECT, "value"),
        Input(IDs.Control.SEARCH_INPUT, "value"),
        Input({"type": IDs.Pattern.TREE_NODE, "index": ALL}, "n_clicks"),
        Input({"type": IDs.Pattern.TREE_CARET, "index": ALL}, "n_clicks"),
        Input(IDs.Control.CLEAR_BINDING_BTN, "n_clicks"),
        Input(IDs.Store.DATA_VERSION, "data"),
        State(IDs.Store.TREE_STATE, "data"),
        State(IDs.Store.BINDING, "data"),
    )
    def update_tree_state(source_id, search_text, _node_clicks, _caret_clicks, _clear_clicks, _version, state_data, binding_data):
        if not source_id:
            return dash.no_update, dash.no_update

        triggered = dash.ctx.triggered_id
        binding = Binding.from_dict(binding_data)
        binding_out = binding.to_dict() if binding else None

        stored = TreeViewState.from_dict(state_data) if state_data else None
        if stored is None or stored.dataset_id != source_id:
            selected_path = selected_path_for(binding, source_id)
            _, result = build_tree(ctx, source_id, selected_path)
            state = TreeViewState.from_build(source_id, result, node_id_for_path(result.nodes, selected_path) or "")
            state.set_filter(search_text)
            return state.to_dict(), binding_out

        selected = stored.selected_id or None
        _, result = build_tree(ctx, source_id, selected)

        if triggered == IDs.Store.DATA_VERSION:
            state = stored.with_nodes(result)
        else:
            state = stored.attach(result)

        if triggered == IDs.Control.SEARCH_INPUT:
            state.set_filter(search_text)

        elif triggered == IDs.Control.CLEAR_BINDING_BTN:
            state.selected_id = ""
            binding_out = None

        elif isinstance(triggered, dict) and triggered.get("type") in (IDs.Pattern.TREE_NODE, IDs.Pattern.TREE_CARET):
            # Re-rendered rows report n_clicks=0; only real clicks count
            if not dash.ctx.triggered[0]["value"]:
                return dash.no_update, dash.no_update
            node_id = triggered["index"]
            if triggered["type"] == IDs.Pattern.TREE_CARET:
                state.click(node_id, on_arrow=True)
                return state.to_dict(), binding_out

            node = next((n for n in state.nodes if n.id == node_id), None)
            new_selected = state.click(node_id)
            if node is not None and node.selectable:
                binding_out = binding_for_click(state, source_id, new_selected)
                logger.debug("Selection changed", extra={"dataset_id": source_id, "node_id": new_selected})

        return state.to_dict(), binding_out

    # ---------------------------------------------------------
    # Render visible rows
    # ---------------------------------------------------------
    @app.callback(
        Output(IDs.Control.TREE_LIST, "children"),
        Output(IDs.Control.TREE_EMPTY, "style"),
        Output(IDs.Control.SOURCE_SUMMARY, "children"),
        Input(IDs.Store.TREE_STATE, "data"),
    )
    def render_tree_rows(state_data):
        if not state_data:
            return [], {}, source_summary(None, 0)

        state = TreeViewState.from_dict(state_data)
        dataset, result = build_tree(ctx, state.dataset_id, state.selected_id or None)
        state.attach(result)

        rows = render_tree(state)
        empty = not rows or dataset is None or not has_content(result.nodes, dataset.picker_type)
        empty_style = {} if empty else {"display": "none"}
        return rows, empty_style, source_summary(dataset, len(result.nodes))
