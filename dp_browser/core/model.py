from __future__ import annotations

from dataclasses import dataclass, field, asdict, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

# Synthetic id of the live document element graph
ELEMENT_PROPS_DATASET_KEY = "elementProperties"

# Keys of the serialized binding, as stored inside element inputs
BINDING_DATASET_KEY = "_$coDatasetId"
BINDING_LOOKUP_KEY = "lookupPath"


class PickerType(str, Enum):
    """Strategy used to materialise a dataset into a tree"""
    DEFAULT = "Default"
    PROJECT_ELEMENTS = "ProjectElements"
    A11Y_PROPS = "A11yProps"


class IconSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"


class BindingState(str, Enum):
    UNBOUND = "unbound"
    VALID = "valid"
    # Dangling reference: source removed or path no longer present
    INVALID = "invalid"


@dataclass(frozen=True)
class DataSource:
    """
    Metadata for a named, bindable data source.

    - id: stable identifier, also the key of its raw value in the registry
    - name: display name shown in the source list
    - picker_type: how the raw value is turned into a tree
    - storage_path: set for datasets backed by a JSON file in storage
    """
    id: str
    name: str
    picker_type: PickerType = PickerType.DEFAULT
    storage_path: Optional[str] = None

    @property
    def is_stored(self) -> bool:
        return bool(self.storage_path)

    def renamed(self, name: str) -> DataSource:
        return replace(self, name=name)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["picker_type"] = self.picker_type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DataSource:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            picker_type=PickerType(data.get("picker_type", PickerType.DEFAULT.value)),
            storage_path=data.get("storage_path"),
        )


@dataclass(frozen=True)
class ParsedDataSource:
    """Snapshot handed to the tree builder: metadata plus the JSON text of the value"""
    id: str
    name: str
    picker_type: PickerType
    value: str
    symbol_id: Optional[str] = None


@dataclass(frozen=True)
class NodeIcon:
    name: str = ""
    size: IconSize = IconSize.SMALL


@dataclass(frozen=True)
class TreeNode:
    id: str
    title: str
    level: int
    position: Tuple[int, ...]
    type: Optional[str] = None
    parent_id: Optional[str] = None
    root_id: Optional[str] = None
    selectable: bool = True
    has_children: bool = False
    icon: NodeIcon = field(default_factory=NodeIcon)
    value: Optional[str] = None
    has_extra_info: bool = False
    # Path a binding to this node stores, when it differs from the id
    lookup_path: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return self.id == self.root_id


@dataclass(frozen=True)
class Binding:
    """A stored reference from a UI property into a dataset"""
    dataset_id: str
    lookup_path: str

    @property
    def is_whole_source(self) -> bool:
        return self.lookup_path == self.dataset_id

    def to_dict(self) -> Dict[str, str]:
        return {BINDING_DATASET_KEY: self.dataset_id, BINDING_LOOKUP_KEY: self.lookup_path}

    @classmethod
    def from_dict(cls, data: Any) -> Optional[Binding]:
        if not is_data_bound_value(data):
            return None
        return cls(dataset_id=data[BINDING_DATASET_KEY], lookup_path=data[BINDING_LOOKUP_KEY])


def is_data_bound_value(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and isinstance(value.get(BINDING_DATASET_KEY), str)
        and isinstance(value.get(BINDING_LOOKUP_KEY), str)
    )
