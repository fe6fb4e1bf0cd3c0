"""
Config package for dp_browser.

Responsible for:
- config models (GlobalConfig, DatasetConfig)
- config I/O helpers (load_global_config)
"""

from .model import GlobalConfig, DatasetConfig
from .io import load_global_config
