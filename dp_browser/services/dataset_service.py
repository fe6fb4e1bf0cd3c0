from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from dp_browser.config.model import GlobalConfig
from dp_browser.core.exceptions import ConfigError
from dp_browser.core.model import DataSource
from dp_browser.services.registry import DataSourceRegistry
from dp_browser.services.storage import StorageBackend

logger = logging.getLogger(__name__)


def load_stored_dataset(
        registry: DataSourceRegistry,
        storage: StorageBackend,
        dataset: DataSource,
) -> bool:
    """
    Load a storage-backed dataset into the registry unless its current
    storage path is already loaded. Returns True when the data is available.
    """
    if not dataset.is_stored:
        raise ValueError(f"Dataset '{dataset.id}' has no storage path")
    if registry.has_data(dataset):
        return True

    if not storage.exists(dataset.storage_path):
        logger.warning(
            "Stored dataset file missing",
            extra={"dataset_id": dataset.id, "storage_path": dataset.storage_path},
        )
        return False

    logger.info("Loading stored dataset", extra={"dataset_id": dataset.id, "storage_path": dataset.storage_path})
    blob = storage.read_bytes(dataset.storage_path)
    return registry.add_source_from_blob(dataset, blob)


def load_element_properties(path: Path) -> Dict[str, Any]:
    try:
        with path.open(encoding="utf-8") as f:
            props = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read element map {path}: {e}") from e
    if not isinstance(props, dict):
        raise ConfigError(f"Element map {path} must be a JSON object keyed by element id")
    return props


def populate_registry(
        registry: DataSourceRegistry,
        global_config: GlobalConfig,
        storage: Optional[StorageBackend] = None,
) -> DataSourceRegistry:
    """
    Register every configured dataset. Inline values are added directly,
    storage-backed ones are read through the storage backend. A dataset that
    fails to load is logged and left out.
    """
    for cfg in global_config.datasets:
        dataset = cfg.to_data_source()
        if cfg.has_inline_value:
            registry.add_source(dataset, cfg.value)
        elif storage is None:
            logger.warning("No storage configured for stored dataset", extra={"dataset_id": dataset.id})
        else:
            load_stored_dataset(registry, storage, dataset)

    if global_config.elements_file is not None:
        registry.set_element_properties(load_element_properties(global_config.elements_file))
    if global_config.isolated_symbol_id:
        registry.set_symbol_isolation_mode(global_config.isolated_symbol_id)

    logger.info(
        "Registry populated",
        extra={"n_datasets": len(registry), "dataset_ids": list(registry)},
    )
    return registry
