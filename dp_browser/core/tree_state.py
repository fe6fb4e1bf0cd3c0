from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from dp_browser.core.model import TreeNode
from dp_browser.core.tree_builder import BuildResult
from dp_browser.core.visibility import node_index, visible


@dataclass
class TreeViewState:
    """
    Interactive state of one rendered data tree.

    Fields:

    - dataset_id: source the tree was built from
    - expanded: ids of open nodes, kept by id across rebuilds
    - filter_text: active search, empty when not searching
    - selected_id: id of the bound node ("" when nothing is selected)

    Nodes are held for the click rules only and are not serialised.
    """

    dataset_id: str
    expanded: Set[str] = field(default_factory=set)
    filter_text: str = ""
    selected_id: str = ""
    nodes: Tuple[TreeNode, ...] = field(default=(), repr=False, compare=False)

    @classmethod
    def from_build(cls, dataset_id: str, result: BuildResult, selected_id: str = "") -> TreeViewState:
        return cls(
            dataset_id=dataset_id,
            expanded=set(result.default_expanded_ids),
            selected_id=selected_id,
            nodes=result.nodes,
        )

    @property
    def is_filtering(self) -> bool:
        return bool(self.filter_text)

    def visible_nodes(self) -> List[TreeNode]:
        return visible(self.nodes, self.expanded, self.filter_text)

    def with_nodes(self, result: BuildResult) -> TreeViewState:
        """
        Swap in a rebuilt tree. Expanded ids of nodes that still exist are
        kept, new default expansions are added.
        """
        ids = {n.id for n in result.nodes}
        self.nodes = result.nodes
        self.expanded = {i for i in self.expanded if i in ids} | set(result.default_expanded_ids)
        if self.selected_id and self.selected_id not in ids:
            self.selected_id = ""
        return self

    def attach(self, result: BuildResult) -> TreeViewState:
        """Attach nodes to a restored state without touching expansion"""
        self.nodes = result.nodes
        return self

    def set_filter(self, text: Optional[str]) -> None:
        self.filter_text = (text or "").strip()

    def toggle_collapse(self, node_id: str) -> None:
        # Searching shows a fixed view and root nodes never collapse
        if self.is_filtering:
            return
        node = node_index(self.nodes).get(node_id)
        if node is not None and node.is_root:
            return
        if node_id in self.expanded:
            self.expanded.discard(node_id)
        else:
            self.expanded.add(node_id)

    def click(self, node_id: str, on_arrow: bool = False) -> Optional[str]:
        """
        Handle a click on a node row. The expand arrow and non-selectable
        nodes toggle collapse, selectable ones toggle the selection.
        Returns the new selection.
        """
        node = node_index(self.nodes).get(node_id)
        if node is None:
            return self.selected_id or None
        if on_arrow:
            if node.has_children:
                self.toggle_collapse(node_id)
            return self.selected_id or None
        if not node.selectable:
            self.toggle_collapse(node_id)
            return self.selected_id or None
        return self.toggle_selected(node_id)

    def toggle_selected(self, node_id: str) -> Optional[str]:
        self.selected_id = "" if self.selected_id == node_id else node_id
        return self.selected_id or None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dataset_id": self.dataset_id,
            "expanded": sorted(self.expanded),
            "filter_text": self.filter_text,
            "selected_id": self.selected_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TreeViewState:
        return cls(
            dataset_id=data.get("dataset_id") or "",
            expanded=set(data.get("expanded", [])),
            filter_text=data.get("filter_text") or "",
            selected_id=data.get("selected_id") or "",
        )
