from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dp_browser.core.exceptions import ConfigError
from dp_browser.core.model import DataSource, PickerType
from dp_browser.services.debounce import DEFAULT_SEARCH_DEBOUNCE_MS

_MISSING = object()


@dataclass
class DatasetConfig:
    """
    Parsed config entry for a single dataset (one file in datasets/).

    Either 'storage_path' (JSON file in the storage root) or an inline
    'value' provides the data.
    """
    raw: Dict[str, Any]
    source_path: Path
    index: int

    @property
    def id(self) -> str:
        return str(self.raw.get("id") or self.source_path.stem)

    @property
    def name(self) -> str:
        return self.raw.get("name", f"Dataset {self.index}")

    @property
    def picker_type(self) -> PickerType:
        raw_type = self.raw.get("picker_type", PickerType.DEFAULT.value)
        try:
            return PickerType(raw_type)
        except ValueError:
            raise ConfigError(f"Unknown picker_type '{raw_type}' in {self.source_path.name}")

    @property
    def storage_path(self) -> Optional[str]:
        return self.raw.get("storage_path")

    @property
    def has_inline_value(self) -> bool:
        return self.raw.get("value", _MISSING) is not _MISSING

    @property
    def value(self) -> Any:
        return self.raw.get("value")

    def to_data_source(self) -> DataSource:
        return DataSource(
            id=self.id,
            name=self.name,
            picker_type=self.picker_type,
            storage_path=self.storage_path,
        )

    @classmethod
    def from_raw(cls, raw: Dict[str, Any], source_path: Path, index: int) -> DatasetConfig:
        if not isinstance(raw, dict):
            raise ConfigError(f"Dataset config {source_path.name} must be a JSON object")
        cfg = cls(raw=raw, source_path=source_path, index=index)
        if not cfg.storage_path and not cfg.has_inline_value:
            raise ConfigError(f"Dataset config {source_path.name} needs 'storage_path' or 'value'")
        # fail early on an unknown picker type
        cfg.to_data_source()
        return cfg


@dataclass
class GlobalConfig:
    """
    - ui_title: title shown in the navbar and browser tab
    - default_dataset: id of the source opened first (element graph if unset)
    - storage_root: directory holding storage-backed dataset files
    - elements_file: JSON element map used as the live document
    - isolated_symbol_id: start in isolation mode on this element
    - search_debounce_ms: quiet time before a search is applied
    """
    ui_title: str
    datasets: List[DatasetConfig] = field(default_factory=list)
    default_dataset: Optional[str] = None
    storage_root: Optional[Path] = None
    elements_file: Optional[Path] = None
    isolated_symbol_id: Optional[str] = None
    search_debounce_ms: int = DEFAULT_SEARCH_DEBOUNCE_MS
