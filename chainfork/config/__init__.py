"""chainfork configuration module"""

from .logging import configure_logging, log_error
from .settings import ForkSettings, load_settings
from .types import ChainIdentity, StorageCacheOption

__all__ = [
    "ChainIdentity",
    "ForkSettings",
    "StorageCacheOption",
    "configure_logging",
    "load_settings",
    "log_error",
]
