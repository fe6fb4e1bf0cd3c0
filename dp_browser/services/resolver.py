from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Set, Tuple

from dp_browser.core.exceptions import DatasetParseError, UnknownDatasetError
from dp_browser.core.json_value import js_stringify
from dp_browser.core.model import (
    ELEMENT_PROPS_DATASET_KEY,
    Binding,
    BindingState,
    is_data_bound_value,
)
from dp_browser.core.paths import lookup_value, parse_path, validate_keys, WholeSourcePath
from dp_browser.services.registry import DataSourceRegistry, Snapshot, parse_blob

logger = logging.getLogger(__name__)

INNER_HTML = "innerHTML"
DATA_SOURCE_REGEX = re.compile(r'source="([^"]+)"')

StateListener = Callable[[BindingState, Any], None]


# -------------------------------------------------------------------------
# Lookup
# -------------------------------------------------------------------------

def lookup_data_bound_value(
        binding: Optional[Binding],
        element_properties: Optional[Mapping[str, Any]],
        dataset_data: Mapping[str, Any],
) -> Any:
    """
    Raw value a binding points to. A whole-source binding yields the source
    itself; a value that is itself a binding is followed until a plain value
    is reached. Circular chains resolve to None.
    """
    seen: Set[Tuple[str, str]] = set()
    current = binding
    while current is not None:
        if current.dataset_id == ELEMENT_PROPS_DATASET_KEY:
            data = element_properties
        else:
            data = dataset_data.get(current.dataset_id)
        if not data:
            return None

        kind = parse_path(current.dataset_id, current.lookup_path)
        if kind is None:
            return None
        value = data if isinstance(kind, WholeSourcePath) else lookup_value(data, kind.keys)
        if not is_data_bound_value(value):
            return value

        seen.add((current.dataset_id, current.lookup_path))
        current = Binding.from_dict(value)
        if (current.dataset_id, current.lookup_path) in seen:
            logger.warning(
                "Circular data binding",
                extra={"dataset_id": current.dataset_id, "lookup_path": current.lookup_path},
            )
            return None
    return None


def _is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def replace_bindings_with_values(
        inputs: Mapping[str, Any],
        element_properties: Optional[Mapping[str, Any]],
        dataset_data: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Replace each binding with its current value. Values that are not
    primitives become None.
    """
    replaced: Dict[str, Any] = {}
    for key, value in inputs.items():
        bound = lookup_data_bound_value(Binding.from_dict(value), element_properties, dataset_data)
        replaced[key] = bound if _is_primitive(bound) else None
    return replaced


def data_source_references_from_html(html: Any) -> list[str]:
    return DATA_SOURCE_REGEX.findall(str(html))


def _element_dataset_ids(all_dataset_ids: Set[str], element: Optional[Mapping[str, Any]]) -> list[str]:
    if not element or not element.get("inputs"):
        return []

    dataset_ids: list[str] = []
    for key, value in element["inputs"].items():
        if isinstance(value, str) and value in all_dataset_ids:
            dataset_ids.append(value)
            continue
        binding = Binding.from_dict(value)
        if binding is not None and binding.dataset_id != ELEMENT_PROPS_DATASET_KEY:
            dataset_ids.append(binding.dataset_id)
            continue
        # data chips inside rich text
        if key == INNER_HTML and value:
            sources = data_source_references_from_html(value)
            dataset_ids.extend(s for s in sources if s != ELEMENT_PROPS_DATASET_KEY)

    return [i for i in dataset_ids if i in all_dataset_ids]


def dataset_ids_used_by_elements(
        dataset_ids: Set[str],
        elements: Iterable[Mapping[str, Any]],
) -> Set[str]:
    used: Set[str] = set()
    for element in elements:
        used.update(_element_dataset_ids(dataset_ids, element))
    return used


def is_tabular_data(data: Any) -> bool:
    """An array of objects, or an empty array"""
    return isinstance(data, list) and all(isinstance(row, dict) for row in data)


# -------------------------------------------------------------------------
# Resolver
# -------------------------------------------------------------------------

class BindingResolver:
    """
    Answers what a stored binding currently points to, reading the registry
    on every call (nothing is cached).
    """

    def __init__(self, registry: DataSourceRegistry):
        self._registry = registry

    @property
    def registry(self) -> DataSourceRegistry:
        return self._registry

    def resolve(self, binding: Optional[Binding]) -> Any:
        """
        Current value of a binding, or None when anything along the way is
        missing. Objects and arrays come back as JSON text.
        """
        if binding is None:
            return None
        dataset = self._registry.dataset_for_key(binding.dataset_id)
        if dataset is None:
            return None
        if binding.is_whole_source:
            return dataset.name

        value = lookup_data_bound_value(
            binding,
            self._registry.get_element_properties(),
            self._registry.get_loaded_data(),
        )
        if isinstance(value, (dict, list)):
            return js_stringify(value)
        return value

    def _data_for(self, dataset_id: str, latest_data: Optional[Snapshot]) -> Any:
        if dataset_id == ELEMENT_PROPS_DATASET_KEY:
            return self._registry.get_element_properties()
        if latest_data is not None:
            return latest_data.get(dataset_id)
        return self._registry.data_for_key(dataset_id)

    def is_valid(
            self,
            binding: Optional[Binding],
            latest_data: Optional[Snapshot] = None,
            active_dataset_id: Optional[str] = None,
    ) -> bool:
        """
        Check a binding against the latest data (the registry's own state
        when latest_data is not given).

        Invalid when the source is gone, the path does not exist any more or
        the binding belongs to a different source than the active one. A value
        that is itself a binding is followed, and every hop of the chain must
        resolve; a circular chain is invalid.
        """
        if binding is None:
            return False
        if active_dataset_id is not None and active_dataset_id != binding.dataset_id:
            return False

        seen: Set[Tuple[str, str]] = set()
        current = binding
        while True:
            if self._registry.dataset_for_key(current.dataset_id) is None:
                return False
            kind = parse_path(current.dataset_id, current.lookup_path)
            if kind is None:
                return False
            if isinstance(kind, WholeSourcePath):
                return True

            data = self._data_for(current.dataset_id, latest_data)
            if data is None or not validate_keys(data, kind.keys):
                return False
            value = lookup_value(data, kind.keys)
            if not is_data_bound_value(value):
                return True

            seen.add((current.dataset_id, current.lookup_path))
            current = Binding.from_dict(value)
            if (current.dataset_id, current.lookup_path) in seen:
                logger.warning(
                    "Circular data binding",
                    extra={"dataset_id": current.dataset_id, "lookup_path": current.lookup_path},
                )
                return False


class BindingTracker:
    """
    Validity of one stored binding over time.

    UNBOUND -> VALID <-> INVALID. The state only changes on bind/unbind or
    when the registry broadcasts new data; an invalid binding stays invalid
    until the data changes again or the user rebinds.
    """

    def __init__(
            self,
            resolver: BindingResolver,
            binding: Optional[Binding] = None,
            active_dataset_id: Optional[str] = None,
            on_change: Optional[StateListener] = None,
    ):
        self._resolver = resolver
        self._binding: Optional[Binding] = None
        self._active_dataset_id = active_dataset_id
        self._on_change = on_change
        self._state = BindingState.UNBOUND
        self._value: Any = None
        self._unsubscribe = resolver.registry.subscribe(self._on_data)
        if binding is not None:
            self.bind(binding)

    @property
    def state(self) -> BindingState:
        return self._state

    @property
    def binding(self) -> Optional[Binding]:
        return self._binding

    @property
    def value(self) -> Any:
        """Last resolved value, None while unbound or dangling"""
        return self._value

    @property
    def is_dangling(self) -> bool:
        return self._state == BindingState.INVALID

    def bind(self, binding: Binding, active_dataset_id: Optional[str] = None) -> BindingState:
        self._binding = binding
        if active_dataset_id is not None:
            self._active_dataset_id = active_dataset_id
        return self._refresh(None)

    def unbind(self) -> BindingState:
        self._binding = None
        return self._set_state(BindingState.UNBOUND, None)

    def close(self) -> None:
        self._unsubscribe()

    def _on_data(self, snapshot: Snapshot) -> None:
        if self._binding is not None:
            self._refresh(snapshot)

    def _refresh(self, snapshot: Optional[Snapshot]) -> BindingState:
        binding = self._binding
        if binding is None:
            return self._set_state(BindingState.UNBOUND, None)
        if self._resolver.is_valid(binding, snapshot, self._active_dataset_id):
            return self._set_state(BindingState.VALID, self._resolver.resolve(binding))
        logger.info(
            "Binding no longer resolves",
            extra={"dataset_id": binding.dataset_id, "lookup_path": binding.lookup_path},
        )
        return self._set_state(BindingState.INVALID, None)

    def _set_state(self, state: BindingState, value: Any) -> BindingState:
        changed = state != self._state or value != self._value
        self._state = state
        self._value = value
        if changed and self._on_change is not None:
            self._on_change(state, value)
        return state


# -------------------------------------------------------------------------
# Data editor
# -------------------------------------------------------------------------

def commit_edit(
        registry: DataSourceRegistry,
        dataset_id: str,
        text: str,
        binding: Optional[Binding] = None,
) -> Optional[Binding]:
    """
    Replace a dataset with edited JSON text. Returns the binding to keep: the
    given one if it still points at something, otherwise None.

    Raises:
        DatasetParseError: text is not valid JSON (nothing is changed)
        UnknownDatasetError: no editable dataset with that id
    """
    if dataset_id == ELEMENT_PROPS_DATASET_KEY or dataset_id not in registry:
        raise UnknownDatasetError(f"No editable dataset '{dataset_id}'")
    try:
        value = parse_blob(text)
    except ValueError as e:
        raise DatasetParseError(f"Edited data for '{dataset_id}' is not valid JSON: {e}") from e

    registry.update_source(dataset_id, value)
    if binding is None or binding.dataset_id != dataset_id:
        return binding
    if BindingResolver(registry).is_valid(binding):
        return binding
    logger.info("Clearing binding after data edit", extra={"dataset_id": dataset_id, "lookup_path": binding.lookup_path})
    return None
