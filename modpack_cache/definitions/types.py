# modpack_cache/definitions/types.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["Platform", "Side", "ModReference", "ModMetadata", "Definition"]



class Platform(str, Enum):
    MODRINTH = "modrinth"
    CURSEFORGE = "curseforge"
    URL = "url"             # Hosted elsewhere, metadata lives in the definition itself



class Side(str, Enum):
    CLIENT = "client"
    SERVER = "server"
    BOTH = "both"



@dataclass(frozen=True, slots=True)
class ModReference:
    """
    Normalized pointer at one upstream project (and optionally one version of it).
    """
    platform: Platform
    projectId: str              # Modrinth id/slug, CurseForge numeric id/slug, or download URL
    versionId: str | None = None

    @property
    def cacheKey(self) -> str:
        return f"{self.platform.value}:{self.projectId}:{self.versionId or ''}"

    @property
    def projectKey(self) -> tuple[str, str]:
        return (self.platform.value, self.projectId.lower())

    def __str__(self) -> str:
        return self.cacheKey



class ModMetadata(BaseModel):
    """Display metadata for one mod, as shown by the front-end."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    displayName: str
    versionLabel: str
    author: str | None = None
    canonicalUrl: str
    side: Side = Side.BOTH
    gameVersions: list[str] = Field(default_factory=list)    # Newest first
    loaders: list[str] = Field(default_factory=list)         # Sorted



@dataclass(frozen=True, slots=True)
class Definition:
    """One parsed definition file."""
    path: Path                  # Absolute path of the definition file
    relPath: str                # POSIX path relative to the input directory
    reference: ModReference
    inline: ModMetadata | None = None   # Set for hosted-elsewhere mods only
