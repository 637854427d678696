# modpack_cache/manifest/emitter.py
from __future__ import annotations
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import fastjsonschema

from modpack_cache.core.errors import ManifestIOFailure
from modpack_cache.core.jsonutils import prettyJsonDumps
from modpack_cache.definitions.types import ModMetadata
from .schema import validateManifest

logger = logging.getLogger(__name__)

__all__ = ["manifestEntry", "renderManifest", "emitManifest"]



def manifestEntry(metadata: ModMetadata, *, includeCompatibility: bool = False) -> dict[str, Any]:
    """One manifest object. Key order is fixed; `author` is left out when unknown."""
    out: dict[str, Any] = {"name": metadata.displayName, "version": metadata.versionLabel}
    if metadata.author:
        out["author"] = metadata.author
    out["url"] = metadata.canonicalUrl
    out["side"] = metadata.side.value
    if includeCompatibility:
        out["game_versions"] = list(metadata.gameVersions)
        out["loaders"] = list(metadata.loaders)
    return out



def renderManifest(entries: Iterable[ModMetadata], *, includeCompatibility: bool = False, indent: int = 2) -> str:
    """
    Serializes entries (already in manifest order) to the manifest text.
    Raises fastjsonschema.JsonSchemaValueException when the result breaks the schema.
    """
    document = [manifestEntry(entry, includeCompatibility=includeCompatibility) for entry in entries]
    validateManifest(document)
    return prettyJsonDumps(document, indent=indent)



def emitManifest(
    entries: Iterable[ModMetadata],
    outputPath: str | Path,
    *,
    includeCompatibility: bool = False,
    indent: int = 2,
) -> Path:
    """
    Writes the manifest atomically: sibling temp file, fsync, os.replace.
    On any failure the temp file is removed, the previous output stays
    untouched and ManifestIOFailure is raised.
    """
    target = Path(outputPath)
    try:
        text = renderManifest(entries, includeCompatibility=includeCompatibility, indent=indent)
    except fastjsonschema.JsonSchemaValueException as err:
        raise ManifestIOFailure(target, f"Manifest violates its schema: {err.message}") from err

    tmpPath = target.with_name(f".{target.name}.tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(tmpPath, "w", encoding="utf-8", newline="\n") as fl:
            fl.write(text)
            fl.flush()
            os.fsync(fl.fileno())
        os.replace(tmpPath, target)
    except OSError as err:
        tmpPath.unlink(missing_ok=True)
        raise ManifestIOFailure(target, f"Cannot write manifest: {err}") from err

    logger.info("Wrote manifest '%s' (%d bytes)", target, len(text.encode("utf-8")))
    return target
