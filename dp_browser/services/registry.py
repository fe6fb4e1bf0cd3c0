from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Set, Union

from dp_browser.core.exceptions import UnknownDatasetError
from dp_browser.core.model import (
    ELEMENT_PROPS_DATASET_KEY,
    DataSource,
    ParsedDataSource,
    PickerType,
)
from dp_browser.core.paths import split_path

logger = logging.getLogger(__name__)

ELEMENT_PROPS_CONFIG = DataSource(
    id=ELEMENT_PROPS_DATASET_KEY,
    name="Project elements",
    picker_type=PickerType.PROJECT_ELEMENTS,
)

SYMBOL_PROPS_CONFIG = DataSource(
    id=ELEMENT_PROPS_DATASET_KEY,
    name="Component elements",
    picker_type=PickerType.PROJECT_ELEMENTS,
)

Snapshot = Dict[str, Any]
Listener = Callable[[Snapshot], None]
Blob = Union[bytes, str]


def stringify_data(data: Any) -> str:
    return json.dumps(data, indent=1, ensure_ascii=False) if data else ""


def parse_blob(blob: Blob) -> Any:
    """Raises ValueError (json.JSONDecodeError / UnicodeDecodeError) on bad content"""
    text = blob.decode("utf-8") if isinstance(blob, bytes) else blob
    return json.loads(text)


class DataSourceRegistry(Mapping[str, DataSource]):
    """
    Owns the bindable data sources of one editing session.

    Implements the Mapping interface over the registered datasets (the live
    element graph is not part of the mapping, it is reached through
    ELEMENT_PROPS_DATASET_KEY in the lookup methods).

    Design Notes:
    - values are replaced wholesale, never merged
    - every change broadcasts the complete id -> raw value mapping to
      subscribers; a new subscriber immediately receives the current one
    - storage-backed datasets are tracked by storage path as well, because
      edits rewrite the path while the dataset id stays the same
    """

    def __init__(self, element_properties: Optional[Dict[str, Any]] = None):
        self._datasets: Dict[str, DataSource] = {}
        self._data: Dict[str, Any] = {}
        self._loaded_storage_paths: Set[str] = set()
        self._element_properties = element_properties
        self._isolated_symbol_id: Optional[str] = None
        self._listeners: List[Listener] = []

    # ---------------------------------------------------------
    # Mapping interface
    # ---------------------------------------------------------
    def __getitem__(self, dataset_id: str) -> DataSource:
        try:
            return self._datasets[dataset_id]
        except KeyError:
            raise UnknownDatasetError(f"Unknown dataset '{dataset_id}'")

    def __iter__(self) -> Iterator[str]:
        return iter(self._datasets)

    def __len__(self) -> int:
        return len(self._datasets)

    # ---------------------------------------------------------
    # Element graph
    # ---------------------------------------------------------
    def set_element_properties(self, props: Optional[Dict[str, Any]]) -> None:
        self._element_properties = props

    def get_element_properties(self) -> Optional[Dict[str, Any]]:
        return self._element_properties

    def set_symbol_isolation_mode(self, symbol_id: str) -> None:
        self._isolated_symbol_id = symbol_id

    def exit_symbol_isolation_mode(self) -> None:
        self._isolated_symbol_id = None

    @property
    def isolated_symbol_id(self) -> Optional[str]:
        return self._isolated_symbol_id

    @property
    def elem_props_config(self) -> DataSource:
        return SYMBOL_PROPS_CONFIG if self._isolated_symbol_id else ELEMENT_PROPS_CONFIG

    # ---------------------------------------------------------
    # Mutations
    # ---------------------------------------------------------
    def add_source(self, dataset: DataSource, value: Any, picker_type: Optional[PickerType] = None) -> None:
        if dataset.id == ELEMENT_PROPS_DATASET_KEY:
            raise ValueError(f"Dataset id '{dataset.id}' is reserved for the element graph")

        if picker_type is not None and picker_type != dataset.picker_type:
            dataset = DataSource(dataset.id, dataset.name, picker_type, dataset.storage_path)

        self._datasets[dataset.id] = dataset
        self._data[dataset.id] = value
        if dataset.is_stored:
            self._loaded_storage_paths.add(dataset.storage_path)

        logger.info("Data source added", extra={"dataset_id": dataset.id, "dataset": dataset.name})
        self._emit()

    def add_source_from_blob(self, dataset: DataSource, blob: Blob) -> bool:
        """
        Register a dataset from serialized JSON. Invalid content is logged and
        nothing is registered.
        """
        try:
            value = parse_blob(blob)
        except ValueError as e:
            logger.warning(
                "Tried to load invalid data into data picker",
                extra={"dataset_id": dataset.id, "error": str(e)},
            )
            return False
        self.add_source(dataset, value, PickerType.DEFAULT)
        return True

    def update_source(self, dataset_id: str, value: Any) -> None:
        if dataset_id not in self._data:
            return
        self._data[dataset_id] = value
        self._emit()

    def update_source_from_blob(self, dataset_id: str, blob: Blob) -> bool:
        try:
            value = parse_blob(blob)
        except ValueError as e:
            logger.warning(
                "Ignoring invalid data update",
                extra={"dataset_id": dataset_id, "error": str(e)},
            )
            return False
        self.update_source(dataset_id, value)
        return dataset_id in self._data

    def update_source_name(self, dataset_id: str, name: str) -> None:
        current = self._datasets.get(dataset_id)
        if current is None:
            return
        self._datasets[dataset_id] = current.renamed(name)

    def remove_source(self, dataset_id: str) -> None:
        known = dataset_id in self._datasets or dataset_id in self._data
        dataset = self._datasets.pop(dataset_id, None)
        self._data.pop(dataset_id, None)
        if dataset is not None and dataset.is_stored:
            self._loaded_storage_paths.discard(dataset.storage_path)
        if known:
            logger.info("Data source removed", extra={"dataset_id": dataset_id})
            self._emit()

    def reset(self) -> None:
        self._element_properties = None
        self._datasets.clear()
        self._data.clear()
        self._loaded_storage_paths.clear()
        self._emit()

    # ---------------------------------------------------------
    # Queries
    # ---------------------------------------------------------
    def has_data(self, dataset: DataSource) -> bool:
        # The storage path of a stored dataset changes as edits are made
        if dataset.is_stored:
            return dataset.storage_path in self._loaded_storage_paths
        return dataset.id in self._data

    def get_source_list(self) -> List[DataSource]:
        return [self.elem_props_config, *self._datasets.values()]

    def dataset_for_key(self, dataset_id: str) -> Optional[DataSource]:
        if dataset_id == ELEMENT_PROPS_DATASET_KEY:
            return self.elem_props_config
        return self._datasets.get(dataset_id)

    def data_for_key(self, dataset_id: str) -> Any:
        if dataset_id == ELEMENT_PROPS_DATASET_KEY:
            return self._element_properties
        return self._data.get(dataset_id)

    def get_tree(self, dataset_id: str) -> Optional[ParsedDataSource]:
        dataset = self.dataset_for_key(dataset_id)
        if dataset is None:
            return None
        return ParsedDataSource(
            id=dataset.id,
            name=dataset.name,
            picker_type=dataset.picker_type,
            value=stringify_data(self.data_for_key(dataset_id)),
            symbol_id=self._isolated_symbol_id,
        )

    @property
    def sources(self) -> List[ParsedDataSource]:
        """Snapshots of every source, the element graph first when present"""
        parsed = [self.get_tree(dataset_id) for dataset_id in self._datasets]
        element = self.get_tree(ELEMENT_PROPS_DATASET_KEY) if self._element_properties else None
        return ([element] if element else []) + [p for p in parsed if p is not None]

    def get_loaded_data(self) -> Snapshot:
        return dict(self._data)

    def get_loaded_data_blobs(self) -> Dict[str, bytes]:
        return {
            dataset_id: json.dumps(value, ensure_ascii=False).encode("utf-8")
            for dataset_id, value in self._data.items()
        }

    @staticmethod
    def data_ref_from_id(node_id: str) -> str:
        segments = split_path(node_id)
        return segments[0] if segments else ""

    # ---------------------------------------------------------
    # Change notification
    # ---------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        self._notify(listener, self.get_loaded_data())

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        snapshot = self.get_loaded_data()
        for listener in list(self._listeners):
            self._notify(listener, snapshot)

    @staticmethod
    def _notify(listener: Listener, snapshot: Snapshot) -> None:
        try:
            listener(dict(snapshot))
        except Exception:
            logger.exception("Data source listener failed")
