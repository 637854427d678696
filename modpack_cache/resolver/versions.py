# modpack_cache/resolver/versions.py
from __future__ import annotations
import re
from collections.abc import Iterable

__all__ = ["RELEASE_VERSION_RE", "CURSEFORGE_MOD_LOADERS", "normalizeGameVersions", "normalizeLoaders"]

# Minecraft release versions only ("1.20", "1.20.4"); snapshots and loader tags are dropped.
RELEASE_VERSION_RE = re.compile(r"^1\.[0-9]+(\.[0-9]+)?$")

# CurseForge ModLoaderType enum
CURSEFORGE_MOD_LOADERS: dict[int, str] = {
    0: "any",
    1: "forge",
    2: "cauldron",
    3: "liteloader",
    4: "fabric",
    5: "quilt",
    6: "neoforge",
}



def _versionKey(version: str) -> tuple[int, int]:
    parts = version.split(".")
    minor = int(parts[1])
    patch = int(parts[2]) if len(parts) > 2 else 0
    return (minor, patch)



def normalizeGameVersions(versions: Iterable[object]) -> list[str]:
    """Release versions only, deduplicated, newest first."""
    kept = {str(v) for v in versions if isinstance(v, str) and RELEASE_VERSION_RE.match(v)}
    return sorted(kept, key=lambda v: (*_versionKey(v), v), reverse=True)



def normalizeLoaders(loaders: Iterable[object]) -> list[str]:
    """Lower-cased, deduplicated, sorted."""
    return sorted({str(loader).strip().lower() for loader in loaders if isinstance(loader, str) and loader.strip()})
