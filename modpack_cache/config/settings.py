# modpack_cache/config/settings.py
from __future__ import annotations
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "DefinitionsSettings", "CacheSettings", "ResolverSettings", "HttpSettings",
    "ModrinthSettings", "CurseForgeSettings", "ManifestSettings", "LoggingSettings",
    "Settings", "defaultSettingsData",
]



class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")



class DefinitionsSettings(_Section):
    suffix: str = ".pw.toml"                            # Definition file suffix for directory scans
    useIndex: bool = True                               # Prefer packwiz index.toml metafile entries
    indexFile: str = "index.toml"



class CacheSettings(_Section):
    path: str = ".modpack-cache/resolutions.json5"      # Relative paths resolve against the working dir



class ResolverSettings(_Section):
    maxConcurrency: int = Field(default=8, ge=1)        # In-flight resolutions
    resolveTimeoutMs: int = Field(default=60_000, ge=1) # Budget for one reference, retries included



class HttpSettings(_Section):
    timeoutMs: int = Field(default=10_000, ge=1)
    retries: int = Field(default=2, ge=0)               # 2 retries -> 3 attempts
    backoffBaseMs: int = Field(default=200, ge=0)
    backoffMaxMs: int = Field(default=3_200, ge=0)
    maxRetryAfterMs: int = Field(default=30_000, ge=0)  # Longer Retry-After means give up
    http2: bool = True
    userAgent: str = "cache_modpack/0.1.0 (packwiz modpack metadata)"



class ModrinthSettings(_Section):
    apiBase: str = "https://api.modrinth.com/v2"
    siteBase: str = "https://modrinth.com"



class CurseForgeSettings(_Section):
    apiBase: str = "https://api.curseforge.com/v1"
    apiKey: str | None = None                           # Usually supplied through FORGE_API_KEY
    gameId: int = 432                                   # Minecraft



class ManifestSettings(_Section):
    order: Literal["file", "name"] = "file"
    includeCompatibility: bool = False                  # Adds game_versions/loaders to each entry
    indent: int = Field(default=2, ge=0)



class LoggingSettings(_Section):
    level: str = "INFO"
    devFormat: bool = True
    jsonFile: str | None = None
    maxBytes: int = 5 * 1024 * 1024
    backupCount: int = 3



class Settings(_Section):
    """Validated, typed view of the merged configuration layers."""
    definitions: DefinitionsSettings = Field(default_factory=DefinitionsSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    modrinth: ModrinthSettings = Field(default_factory=ModrinthSettings)
    curseforge: CurseForgeSettings = Field(default_factory=CurseForgeSettings)
    manifest: ManifestSettings = Field(default_factory=ManifestSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)



def defaultSettingsData() -> dict[str, Any]:
    """Shipped defaults as plain nested dicts (the bottom config layer)."""
    return Settings().model_dump()
