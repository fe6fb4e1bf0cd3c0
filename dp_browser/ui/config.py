from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dp_browser.config.model import GlobalConfig
from dp_browser.services.registry import DataSourceRegistry
from dp_browser.services.resolver import BindingResolver
from dp_browser.services.storage import StorageBackend


@dataclass
class AppConfig:
    config_root: Path
    global_config: GlobalConfig
    registry: Optional[DataSourceRegistry] = None
    resolver: Optional[BindingResolver] = None
    storage: Optional[StorageBackend] = None

    def validate(self) -> None:
        """Ensure all required services are attached before the app starts."""
        if self.registry is None:
            raise RuntimeError("AppConfig.registry must be initialized.")
        if self.resolver is None:
            raise RuntimeError("AppConfig.resolver must be initialized.")

    @property
    def default_source_id(self) -> str:
        default = self.global_config.default_dataset
        if default and self.registry is not None and self.registry.dataset_for_key(default):
            return default
        return self.registry.get_source_list()[0].id
