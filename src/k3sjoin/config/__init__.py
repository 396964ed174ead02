"""Configuration for k3sjoin"""

from .manager import ConfigManager
from .settings import Settings, load_settings

__all__ = ["ConfigManager", "Settings", "load_settings"]
