from __future__ import annotations

from typing import AbstractSet, Dict, List, Optional, Sequence, Set

from dp_browser.core.model import TreeNode


def node_index(nodes: Sequence[TreeNode]) -> Dict[str, TreeNode]:
    return {n.id: n for n in nodes}


def ancestor_ids(node_id: str, index: Dict[str, TreeNode]) -> List[str]:
    """Parent ids of node_id up to its top-level node, nearest first"""
    ids: List[str] = []
    parent_id = index[node_id].parent_id if node_id in index else None
    while parent_id and parent_id in index and parent_id not in ids:
        ids.append(parent_id)
        parent_id = index[parent_id].parent_id
    return ids


def visible(
        nodes: Sequence[TreeNode],
        expanded_ids: AbstractSet[str],
        filter_text: Optional[str] = "",
) -> List[TreeNode]:
    """
    Nodes to render, in tree order.

    Without a filter, a node shows when every ancestor is expanded. With a
    filter, the expand state is ignored: matches, their ancestors, the
    direct children of matches and all root nodes show.
    """
    index = node_index(nodes)
    if filter_text:
        keep = filtered_ids(nodes, index, filter_text)
        return [n for n in nodes if n.id in keep or n.is_root]

    memo: Dict[str, bool] = {}
    return [n for n in nodes if _ancestors_expanded(n, index, expanded_ids, memo)]


def _ancestors_expanded(
        node: TreeNode,
        index: Dict[str, TreeNode],
        expanded_ids: AbstractSet[str],
        memo: Dict[str, bool],
) -> bool:
    # Walk up until a known answer, then record it for the whole chain
    chain: List[str] = []
    result = True
    current = node
    while True:
        if current.id in memo:
            result = memo[current.id]
            break
        chain.append(current.id)
        parent = index.get(current.parent_id) if current.parent_id else None
        if parent is None or parent.id in chain:
            result = True
            break
        if parent.id not in expanded_ids:
            result = False
            break
        current = parent
    for node_id in chain:
        memo[node_id] = result
    return result


def filtered_ids(
        nodes: Sequence[TreeNode],
        index: Dict[str, TreeNode],
        filter_text: str,
) -> Set[str]:
    """
    Ids kept by a search: case-insensitive substring matches on title or
    value, every ancestor of a match and every direct child of a match.
    """
    needle = filter_text.lower()
    match_set: Set[str] = set()
    filter_set: Set[str] = set()

    for node in nodes:
        title = str(node.title).lower()
        value = node.value.lower() if node.value is not None else None
        if needle not in title and (value is None or needle not in value):
            continue
        match_set.add(node.id)
        filter_set.add(node.id)
        filter_set.update(ancestor_ids(node.id, index))

    for node in nodes:
        if node.parent_id and node.parent_id in match_set:
            filter_set.add(node.id)

    return filter_set
