from __future__ import annotations

from typing import Any, List, Optional, Tuple

from dash import html

from dp_browser.core.model import Binding, DataSource, TreeNode
from dp_browser.core.tree_state import TreeViewState
from dp_browser.services.resolver import BindingResolver
from dp_browser.ui.ids import tree_caret_id, tree_node_id

INDENT_PX = 16
NO_VALUE = "–"


def source_options(sources: List[DataSource]) -> List[dict]:
    return [{"label": ds.name, "value": ds.id} for ds in sources]


def source_summary(dataset: Optional[DataSource], n_nodes: int) -> str:
    if dataset is None:
        return "No source"
    kind = "stored" if dataset.is_stored else "inline"
    return f"{dataset.picker_type.value} · {kind} · {n_nodes} nodes"


def _caret(node: TreeNode, state: TreeViewState) -> str:
    if not node.has_children:
        return ""
    if state.is_filtering or node.id in state.expanded:
        return "▾"
    return "▸"


def render_node(node: TreeNode, state: TreeViewState) -> html.Div:
    """
    One row of the tree. The caret and the content are sibling click
    targets: the caret only expands or collapses, the content selects.
    """
    classes = ["dp-tree-node"]
    if node.id == state.selected_id:
        classes.append("dp-tree-node-selected")
    if not node.selectable:
        classes.append("dp-tree-node-group")

    if node.has_children:
        caret = html.Span(_caret(node, state), id=tree_caret_id(node.id), n_clicks=0, className="dp-tree-caret")
    else:
        caret = html.Span("", className="dp-tree-caret")

    content: List[Any] = []
    if node.icon is not None and node.icon.name:
        content.append(
            html.Span(node.icon.name, className=f"dp-tree-icon dp-icon-{node.icon.size.value}")
        )
    content.append(html.Span(node.title, className="dp-tree-title"))
    if node.value is not None:
        content.append(html.Span(node.value, className="dp-tree-value text-muted ms-2"))
    if node.has_extra_info:
        content.append(html.Span("i", className="dp-tree-info badge bg-info ms-2"))

    return html.Div(
        [caret, html.Span(content, id=tree_node_id(node.id), n_clicks=0, className="dp-tree-content")],
        className=" ".join(classes),
        style={"paddingLeft": f"{node.level * INDENT_PX}px"},
        title=node.id,
    )


def render_tree(state: TreeViewState) -> List[html.Div]:
    return [render_node(n, state) for n in state.visible_nodes()]


def binding_summary(
        resolver: BindingResolver,
        binding: Optional[Binding],
) -> Tuple[str, str, str]:
    """
    Path label, value text and status for the bound node.

    Status is "unbound", "valid" or "invalid"; the value is always read fresh
    from the registry.
    """
    if binding is None:
        return "No binding", NO_VALUE, "unbound"

    label = f"{binding.dataset_id} · {binding.lookup_path}"
    if not resolver.is_valid(binding):
        return label, NO_VALUE, "invalid"

    value = resolver.resolve(binding)
    if value is None:
        text = "null"
    elif isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    return label, text, "valid"


STATUS_COLOURS = {
    "unbound": "secondary",
    "valid": "success",
    "invalid": "danger",
}
