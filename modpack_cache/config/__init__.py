# modpack_cache/config/__init__.py
from .settings import (
    Settings,
    DefinitionsSettings,
    CacheSettings,
    ResolverSettings,
    HttpSettings,
    ModrinthSettings,
    CurseForgeSettings,
    ManifestSettings,
    LoggingSettings,
)
from .store import ConfigStore, buildConfigStore, loadSettings

__all__ = [
    "Settings",
    "DefinitionsSettings",
    "CacheSettings",
    "ResolverSettings",
    "HttpSettings",
    "ModrinthSettings",
    "CurseForgeSettings",
    "ManifestSettings",
    "LoggingSettings",
    "ConfigStore",
    "buildConfigStore",
    "loadSettings",
]
