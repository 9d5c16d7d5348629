"""Core configuration shared by flowmapper components."""

from .config import DEFAULT_CONFIG, DEFAULT_GROUP_SIZE, MapperConfig, resolve_config

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_GROUP_SIZE",
    "MapperConfig",
    "resolve_config",
]
