from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from dp_browser.core import elements as el
from dp_browser.core.exceptions import DatasetParseError
from dp_browser.core.json_value import (
    JsonNull,
    JsonValue,
    child_entries,
    display_text,
    from_python,
    is_container,
    js_stringify,
)
from dp_browser.core.model import (
    DataSource,
    IconSize,
    NodeIcon,
    ParsedDataSource,
    PickerType,
    TreeNode,
)
from dp_browser.core.paths import INPUTS_KEY, ancestor_chain, join_path

logger = logging.getLogger(__name__)

# Node type of containers and nulls, as the browser's typeof reports them
OBJ_TYPE = "object"
NULL_VALUE = "null"

INPUT_ICON = NodeIcon(name="label", size=IconSize.SMALL)

# Element graphs deeper than this are cut off (guards the interpreter stack)
MAX_ELEMENT_DEPTH = 200

# Prepended to a synthetic root id until it no longer clashes with a data key
ROOT_ID_PREFIX = "#"


@dataclass(frozen=True)
class BuildContext:
    """
    Per-build inputs besides the raw value.

    - dataset: when set for generic data, a synthetic root node is shown for it
    - selected_id: currently bound node id, its ancestors start expanded
    - filter_element_ids: elements whose own inputs must not be offered
      (e.g. the element being edited, to avoid binding it to itself)
    - symbol_id: isolation mode, the only root of the element graph
    """
    dataset: Optional[DataSource] = None
    selected_id: Optional[str] = None
    filter_element_ids: Tuple[str, ...] = ()
    symbol_id: Optional[str] = None


@dataclass(frozen=True)
class BuildResult:
    nodes: Tuple[TreeNode, ...]
    default_expanded_ids: Tuple[str, ...]


def build(
        picker_type: PickerType,
        raw_value: Any,
        context: Optional[BuildContext] = None,
) -> BuildResult:
    """
    Materialise one data source into a flat, ordered list of tree nodes.

    raw_value is the parsed value, or its JSON text (as held by a
    ParsedDataSource). The result only depends on the arguments.

    Raises:
        DatasetParseError: if raw_value is text that is not valid JSON
    """
    context = context or BuildContext()
    parsed = _parse(raw_value)

    if picker_type == PickerType.A11Y_PROPS:
        nodes = _unique(convert_a11y_elements_to_nodes(_as_element_map(parsed)))
        expanded = [n.id for n in nodes]
    elif picker_type == PickerType.PROJECT_ELEMENTS:
        nodes = _unique(
            convert_elements_to_nodes(
                _as_element_map(parsed),
                filter_element_ids=context.filter_element_ids,
                symbol_id=context.symbol_id,
            )
        )
        expanded = [n.id for n in nodes if n.type != OBJ_TYPE]
        expanded += ancestor_chain(context.selected_id)
    else:
        nodes = _unique(convert_generic_data_to_nodes(parsed, context.dataset))
        expanded = [n.id for n in nodes if n.level == 1]
        expanded += ancestor_chain(context.selected_id)

    return BuildResult(nodes=tuple(nodes), default_expanded_ids=tuple(dict.fromkeys(expanded)))


def build_from_source(
        source: ParsedDataSource,
        selected_id: Optional[str] = None,
        filter_element_ids: Sequence[str] = (),
) -> BuildResult:
    """Build the tree of a registry snapshot (see DataSourceRegistry.get_tree)"""
    dataset = DataSource(id=source.id, name=source.name, picker_type=source.picker_type)
    context = BuildContext(
        dataset=dataset,
        selected_id=selected_id,
        filter_element_ids=tuple(filter_element_ids),
        symbol_id=source.symbol_id,
    )
    return build(source.picker_type, source.value, context)


def has_content(nodes: Sequence[TreeNode], picker_type: PickerType) -> bool:
    # Element trees always carry at least their board node
    min_length = 1 if picker_type == PickerType.PROJECT_ELEMENTS else 0
    return len(nodes) > min_length


def nodes_for_root(nodes: Iterable[TreeNode], root_id: str) -> List[TreeNode]:
    return [n for n in nodes if n.root_id == root_id]


def binding_path(node: TreeNode) -> str:
    """Lookup path a binding to node stores"""
    return node.lookup_path or node.id


def node_id_for_path(nodes: Iterable[TreeNode], lookup_path: Optional[str]) -> Optional[str]:
    """
    Id of the first node a binding with lookup_path points at. The synthetic
    root comes first, so a whole-source binding maps to it.
    """
    if not lookup_path:
        return None
    return next((n.id for n in nodes if binding_path(n) == lookup_path), None)


# -------------------------------------------------------------------------
# Generic JSON
# -------------------------------------------------------------------------

def node_type(value: JsonValue) -> str:
    if is_container(value) or isinstance(value, JsonNull):
        return OBJ_TYPE
    return value.kind


def flatten_json(
        value: JsonValue,
        key: str = "",
        level: int = 0,
        position: Tuple[int, ...] = (),
        icon: Optional[NodeIcon] = None,
        root_id: Optional[str] = None,
) -> List[TreeNode]:
    """
    Depth-first flattening of a JSON container. Each node id is the
    delimited key path from the first level, prefixed with key when given.
    """
    nodes: List[TreeNode] = []
    for i, (node_key, child) in enumerate(child_entries(value)):
        node_id = join_path(key, node_key) if key else node_key
        pos = position + (i,)
        container = is_container(child)

        leaf_value: Optional[str] = None
        leaf_icon = NodeIcon()
        if isinstance(child, JsonNull):
            leaf_value = NULL_VALUE
        elif not container:
            leaf_value = display_text(child)
            if icon is not None:
                leaf_icon = icon

        nodes.append(
            TreeNode(
                id=node_id,
                title=node_key,
                level=level,
                position=pos,
                type=node_type(child),
                parent_id=key or None,
                root_id=root_id,
                has_children=container,
                icon=leaf_icon,
                value=leaf_value,
            )
        )
        if container:
            nodes.extend(flatten_json(child, node_id, level + 1, pos, icon, root_id))
    return nodes


def convert_generic_data_to_nodes(parsed: Any, dataset: Optional[DataSource] = None) -> List[TreeNode]:
    value = from_python(parsed)
    if dataset is None:
        return flatten_json(value)

    data_nodes = flatten_json(value, level=1, position=(0,))
    taken = {n.id for n in data_nodes}
    root_id = dataset.id
    while root_id in taken:
        root_id = ROOT_ID_PREFIX + root_id

    # A binding to a key named like the dataset would read as the whole source
    data_nodes = [replace(n, selectable=False) if n.id == dataset.id else n for n in data_nodes]

    root = TreeNode(
        id=root_id,
        title=dataset.name,
        level=0,
        position=(),
        parent_id=None,
        root_id=root_id,
        has_children=True,
        lookup_path=dataset.id,
    )
    return [root, *data_nodes]


# -------------------------------------------------------------------------
# Project elements
# -------------------------------------------------------------------------

def convert_elements_to_nodes(
        elements: el.ElementMap,
        filter_element_ids: Sequence[str] = (),
        symbol_id: Optional[str] = None,
) -> List[TreeNode]:
    if symbol_id:
        symbol = elements.get(symbol_id)
        roots = [symbol] if isinstance(symbol, dict) else []
    else:
        roots = el.boards(elements)

    excluded = set(filter_element_ids)
    nodes: List[TreeNode] = []
    for i, root in enumerate(roots):
        root_id = str(root.get("id"))
        nodes.append(
            TreeNode(
                id=root_id,
                title=_element_title(root),
                level=0,
                position=(i,),
                parent_id=None,
                root_id=root_id,
                selectable=False,
                has_children=bool(el.child_ids(root)),
            )
        )
        nodes.extend(
            _element_children(root_id, elements, (i,), 1, excluded, root_id, {root_id})
        )
    return nodes


def _element_children(
        element_id: str,
        elements: el.ElementMap,
        position: Tuple[int, ...],
        level: int,
        excluded: Set[str],
        root_id: str,
        walk: Set[str],
) -> List[TreeNode]:
    element = elements.get(element_id)
    if not isinstance(element, dict):
        return []
    if level > MAX_ELEMENT_DEPTH:
        logger.warning(
            "Element tree too deep, truncating",
            extra={"element_id": element_id, "max_depth": MAX_ELEMENT_DEPTH},
        )
        return []

    nodes: List[TreeNode] = []
    for i, child_id in enumerate(el.child_ids(element)):
        child = elements.get(child_id)
        if not isinstance(child, dict):
            continue
        if child_id in walk:
            logger.debug("Skipping cyclic child", extra={"parent_id": element_id, "child_id": child_id})
            continue

        grandchildren = el.child_ids(child)
        is_excluded = child_id in excluded
        if is_excluded and not grandchildren:
            continue

        input_list = [] if is_excluded else el.valid_inputs(child.get("inputs"))
        has_children = bool(grandchildren or input_list)
        if not has_children:
            continue

        pos = position + (i,)
        nodes.append(
            TreeNode(
                id=child_id,
                title=_element_title(child),
                level=level,
                position=pos,
                parent_id=element_id,
                root_id=root_id,
                selectable=False,
                has_children=True,
            )
        )
        nodes.extend(_input_nodes(input_list, child_id, level + 1, pos, root_id))
        nodes.extend(
            _element_children(child_id, elements, pos, level + 1, excluded, root_id, walk | {child_id})
        )
    return nodes


def _input_nodes(
        input_list: List[Tuple[str, Any]],
        element_id: str,
        level: int,
        position: Tuple[int, ...],
        root_id: str,
) -> List[TreeNode]:
    nodes: List[TreeNode] = []
    for j, (key, raw) in enumerate(input_list):
        binding = join_path(element_id, INPUTS_KEY, key)
        pos = position + (j,)
        value = from_python(raw)

        # Objects and arrays are unwrapped so parts of them can be bound
        if is_container(value):
            nodes.append(
                TreeNode(
                    id=binding,
                    title=key,
                    level=level,
                    position=pos,
                    type=OBJ_TYPE,
                    parent_id=element_id,
                    root_id=root_id,
                    has_children=True,
                )
            )
            nodes.extend(flatten_json(value, binding, level + 1, pos, INPUT_ICON, root_id))
        else:
            nodes.append(
                TreeNode(
                    id=binding,
                    title=key,
                    level=level,
                    position=pos,
                    type=node_type(value),
                    parent_id=element_id,
                    root_id=root_id,
                    icon=INPUT_ICON,
                    value=js_stringify(raw),
                )
            )
    return nodes


# -------------------------------------------------------------------------
# Accessibility
# -------------------------------------------------------------------------

def convert_a11y_elements_to_nodes(elements: el.ElementMap) -> List[TreeNode]:
    nodes: List[TreeNode] = []
    for i, root in enumerate(el.root_elements(elements)):
        root_id = str(root.get("id"))
        nodes.extend(_a11y_nodes(root_id, elements, root_id, None, (i,), 0, {root_id}))
    return nodes


def _a11y_nodes(
        element_id: str,
        elements: el.ElementMap,
        root_id: str,
        parent_id: Optional[str],
        position: Tuple[int, ...],
        level: int,
        walk: Set[str],
) -> List[TreeNode]:
    element = elements.get(element_id)
    if not isinstance(element, dict):
        return []
    if level > MAX_ELEMENT_DEPTH:
        logger.warning(
            "Element tree too deep, truncating",
            extra={"element_id": element_id, "max_depth": MAX_ELEMENT_DEPTH},
        )
        return []

    ids = el.child_ids(element)
    nodes = [
        TreeNode(
            id=element_id,
            title=_element_title(element),
            level=level,
            position=position,
            parent_id=parent_id,
            root_id=root_id,
            has_children=bool(ids),
            icon=NodeIcon(name=el.icon_for_element(element), size=IconSize.MEDIUM),
            has_extra_info=el.has_a11y_info(element),
        )
    ]
    for i, child_id in enumerate(ids):
        if child_id not in elements:
            continue
        if child_id in walk:
            logger.debug("Skipping cyclic child", extra={"parent_id": element_id, "child_id": child_id})
            continue
        nodes.extend(
            _a11y_nodes(child_id, elements, root_id, element_id, position + (i,), level + 1, walk | {child_id})
        )
    return nodes


# -------------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------------

def _parse(raw_value: Any) -> Any:
    if isinstance(raw_value, bytes):
        raw_value = raw_value.decode("utf-8")
    if not isinstance(raw_value, str):
        return raw_value
    if not raw_value:
        return None
    try:
        return json.loads(raw_value)
    except json.JSONDecodeError as e:
        raise DatasetParseError(f"Tree source is not valid JSON: {e}") from e


def _as_element_map(parsed: Any) -> Dict[str, Any]:
    return parsed if isinstance(parsed, dict) else {}


def _element_title(element: Dict[str, Any]) -> str:
    return str(element.get("name") or element.get("id") or "")


def _unique(nodes: List[TreeNode]) -> List[TreeNode]:
    """Keep the first node for each id (shared children, dotted keys)"""
    seen: Set[str] = set()
    unique: List[TreeNode] = []
    for node in nodes:
        if node.id in seen:
            continue
        seen.add(node.id)
        unique.append(node)
    if len(unique) != len(nodes):
        logger.debug("Dropped duplicate tree node ids", extra={"n_dropped": len(nodes) - len(unique)})
    return unique
