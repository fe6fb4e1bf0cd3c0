from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Set

from dp_browser.config.model import DatasetConfig, GlobalConfig
from dp_browser.core.exceptions import ConfigError
from dp_browser.services.debounce import DEFAULT_SEARCH_DEBOUNCE_MS

logger = logging.getLogger(__name__)


def _resolve_dir(root: Path, raw: Optional[str]) -> Optional[Path]:
    # Absolute paths are used as-is, relative ones resolve against the config root
    if raw is None:
        return None
    path = Path(raw)
    return path if path.is_absolute() else (root / path).resolve()


def load_global_config(root: Path) -> GlobalConfig:
    """
    Load configuration from a directory using the multi-file layout.

    Expected structure:

        root/
            global.json
            datasets/
                users.json
                products.json
                ...

    global.json keys (all optional):

    - ui_title: defaults to 'Data Picker'
    - default_dataset: id of the source shown first
    - storage_root: directory of storage-backed dataset files, defaults to 'data'
    - elements_file: JSON element map used as the live document
    - isolated_symbol_id: start in symbol isolation mode
    - search_debounce_ms: defaults to 100

    Each file in 'datasets/' is parsed into a DatasetConfig; files that fail
    to parse are logged and skipped.

    :param root: Directory containing 'global.json' and optionally 'datasets/'.
    :return: A GlobalConfig instance.
    :raises FileNotFoundError: if global.json does not exist.
    :raises ConfigError: if global.json is invalid or dataset ids collide.
    """
    logger.info("Loading global config", extra={"config_root": str(root)})

    global_path = root / "global.json"
    if not global_path.is_file():
        raise FileNotFoundError(f"File not found at {global_path}")

    try:
        with global_path.open(encoding="utf-8") as f:
            raw_global = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {global_path}: {e}") from e
    if not isinstance(raw_global, dict):
        raise ConfigError(f"{global_path} must contain a JSON object")

    datasets = _load_dataset_configs(root / "datasets")

    try:
        debounce_ms = int(raw_global.get("search_debounce_ms", DEFAULT_SEARCH_DEBOUNCE_MS))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"search_debounce_ms must be an integer: {e}") from e

    return GlobalConfig(
        ui_title=raw_global.get("ui_title", "Data Picker"),
        datasets=datasets,
        default_dataset=raw_global.get("default_dataset"),
        storage_root=_resolve_dir(root, raw_global.get("storage_root", "data")),
        elements_file=_resolve_dir(root, raw_global.get("elements_file")),
        isolated_symbol_id=raw_global.get("isolated_symbol_id"),
        search_debounce_ms=debounce_ms,
    )


def _load_dataset_configs(datasets_dir: Path) -> List[DatasetConfig]:
    if not datasets_dir.is_dir():
        logger.warning("Datasets directory not found", extra={"datasets_dir": str(datasets_dir)})
        return []

    files = sorted(datasets_dir.glob("*.json"))
    if not files:
        logger.warning("No dataset configs found", extra={"datasets_dir": str(datasets_dir)})

    datasets: List[DatasetConfig] = []
    seen: Set[str] = set()
    for idx, config_file in enumerate(files):
        try:
            with config_file.open(encoding="utf-8") as f:
                raw = json.load(f)
            cfg = DatasetConfig.from_raw(raw, source_path=config_file, index=idx)
        except (json.JSONDecodeError, ConfigError) as e:
            logger.error("Failed to load dataset config", extra={"file": config_file.name, "error": str(e)})
            continue

        if cfg.id in seen:
            raise ConfigError(f"Duplicate dataset id '{cfg.id}' in {config_file.name}")
        seen.add(cfg.id)
        datasets.append(cfg)

    logger.info("Dataset configs loaded", extra={"n_datasets": len(datasets)})
    return datasets
