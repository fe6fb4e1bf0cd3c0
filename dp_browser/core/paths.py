"""
Lookup-path semantics shared by the tree builder and the binding resolver.

A lookup path is a DATASET_DELIMITER-joined list of keys. For generic JSON
datasets it is a plain key path into the raw value; for the element graph it
is always "<elementId>.inputs.<inputKey>[.<nested>...]". Node ids produced by
the tree builder are exactly these paths, so a selected node id can be stored
as a binding and resolved later without rebuilding the tree.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from dp_browser.core.model import ELEMENT_PROPS_DATASET_KEY

DATASET_DELIMITER = "."
INPUTS_KEY = "inputs"

_MISSING = object()


# -------------------------------------------------------------------------
# Path kinds
# -------------------------------------------------------------------------

@dataclass(frozen=True)
class WholeSourcePath:
    """lookupPath == datasetId: the binding targets the dataset itself"""
    dataset_id: str

    @property
    def keys(self) -> List[str]:
        return []


@dataclass(frozen=True)
class KeyPath:
    segments: Tuple[str, ...]

    @property
    def keys(self) -> List[str]:
        return list(self.segments)


@dataclass(frozen=True)
class ElementInputPath:
    element_id: str
    input_key: str
    rest: Tuple[str, ...] = ()

    @property
    def keys(self) -> List[str]:
        return [self.element_id, INPUTS_KEY, self.input_key, *self.rest]


PathKind = Union[WholeSourcePath, KeyPath, ElementInputPath]


def split_path(lookup_path: Optional[str]) -> List[str]:
    """'foo.bar.baz' -> ['foo', 'bar', 'baz']"""
    return lookup_path.split(DATASET_DELIMITER) if lookup_path else []


def join_path(*segments: str) -> str:
    return DATASET_DELIMITER.join(segments)


def parse_path(dataset_id: str, lookup_path: str) -> Optional[PathKind]:
    """
    Classify a stored lookup path for the dataset it belongs to.
    Returns None when the path cannot address anything in that dataset.
    """
    if lookup_path == dataset_id:
        return WholeSourcePath(dataset_id)

    segments = split_path(lookup_path)
    if not segments:
        return None

    if dataset_id == ELEMENT_PROPS_DATASET_KEY:
        if len(segments) < 3 or segments[1] != INPUTS_KEY:
            return None
        return ElementInputPath(segments[0], segments[2], tuple(segments[3:]))

    return KeyPath(tuple(segments))


def ancestor_chain(node_id: Optional[str]) -> List[str]:
    """
    Ids of a node and all its ancestors, outermost first:
    'a.b.c' -> ['a', 'a.b', 'a.b.c']
    """
    segments = split_path(node_id)
    return [join_path(*segments[: i + 1]) for i in range(len(segments))]


# -------------------------------------------------------------------------
# Lookup / validation / write
# -------------------------------------------------------------------------

def _child(container: Any, key: str) -> Any:
    if isinstance(container, dict):
        return container.get(key, _MISSING)
    if isinstance(container, list):
        if key.isdigit() and int(key) < len(container):
            return container[int(key)]
        return _MISSING
    return _MISSING


def lookup_value(data: Any, keys: List[str]) -> Any:
    """
    Walk keys into data. Any missing segment, or a falsy / scalar value
    before the last key, yields None.
    """
    value = data
    for key in keys:
        if not value:
            return None
        value = _child(value, key)
        if value is _MISSING:
            return None
    return value


def lookup_value_in_data(data: Any, lookup_path: Optional[str]) -> Any:
    if not data:
        return None
    return lookup_value(data, split_path(lookup_path))


def validate_keys(data: Any, keys: List[str]) -> bool:
    """True if every key is present, whatever the leaf value is"""
    value = data
    for key in keys:
        value = _child(value, key)
        if value is _MISSING:
            return False
    return True


def validate_keys_in_data(data: Any, lookup_path: Optional[str]) -> bool:
    return validate_keys(data, split_path(lookup_path))


def write_value_in_data(value: Any, data: Any = None, lookup_path: Optional[str] = None) -> Any:
    """
    Return a copy of data with value written at lookup_path.
    Containers along the path are copied, data itself is left untouched.
    A location that is not a container is left as is.
    """
    if not data or not lookup_path:
        return value
    return _write_at(value, data, split_path(lookup_path))


def _write_at(value: Any, container: Any, keys: List[str]) -> Any:
    if not keys:
        return value
    if not isinstance(container, (dict, list)):
        return container

    head, rest = keys[0], keys[1:]
    updated = copy.copy(container)
    if isinstance(updated, dict):
        if rest:
            if head not in updated:
                return updated
            updated[head] = _write_at(value, updated[head], rest)
        else:
            updated[head] = value
        return updated

    if not head.isdigit():
        return updated
    index = int(head)
    if index >= len(updated):
        if rest:
            return updated
        updated.extend([None] * (index - len(updated) + 1))
    updated[index] = _write_at(value, updated[index], rest) if rest else value
    return updated
