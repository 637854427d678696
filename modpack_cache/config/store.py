# modpack_cache/config/store.py
from __future__ import annotations
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from modpack_cache.core.dictpath import deepMerge
from modpack_cache.core.errors import ConfigError
from .providers import ConfigProvider, DefaultsProvider, FileProvider, OverrideProvider
from .settings import Settings, defaultSettingsData

logger = logging.getLogger(__name__)

__all__ = ["ConfigStore", "ENV_OVERRIDES", "buildConfigStore", "loadSettings"]

# Environment variable → config path
ENV_OVERRIDES: dict[str, str] = {
    "FORGE_API_KEY": "curseforge.apiKey",
    "MODPACK_CACHE_PATH": "cache.path",
    "MODPACK_CACHE_LOG_LEVEL": "logging.level",
}



class ConfigStore:
    """
    Minimal layered config store:
      - snapshot: deep merge of all providers, bottom to top
      - settings(): snapshot validated into the typed Settings model
    """
    def __init__(self, providers: list[ConfigProvider]):
        self._providers = providers

    def snapshot(self) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for provider in self._providers:
            merged = deepMerge(merged, provider.to_dict())
        return merged

    def settings(self) -> Settings:
        try:
            return Settings.model_validate(self.snapshot())
        except ValidationError as err:
            raise ConfigError(f"Invalid configuration: {err}") from err



def buildConfigStore(
    *,
    configFile: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ConfigStore:
    """
    Layers, bottom to top:
      1) shipped defaults
      2) optional JSON5 config file
      3) environment variables listed in ENV_OVERRIDES
      4) explicit overrides (command line), dotted paths → values; None values are ignored
    """
    providers: list[ConfigProvider] = [DefaultsProvider(data=defaultSettingsData())]
    if configFile is not None:
        providers.append(FileProvider(configFile))

    env = os.environ if environ is None else environ
    top = OverrideProvider()
    for envName, path in ENV_OVERRIDES.items():
        value = env.get(envName)
        if value:
            top.set(path, value)
    for path, value in (overrides or {}).items():
        if value is not None:
            top.set(path, value)
    providers.append(top)

    return ConfigStore(providers)



def loadSettings(
    *,
    configFile: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    store = buildConfigStore(configFile=configFile, overrides=overrides, environ=environ)
    settings = store.settings()
    logger.debug("Config loaded (file=%s, overrides=%s)", configFile, sorted((overrides or {}).keys()))
    return settings
