# modpack_cache/cache/store.py
from __future__ import annotations
import asyncio
import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import json5
from pydantic import BaseModel, ConfigDict, ValidationError

from modpack_cache.core.errors import CacheIOFailure
from modpack_cache.core.time import nowMs
from modpack_cache.definitions.types import ModMetadata, ModReference, Platform

logger = logging.getLogger(__name__)

__all__ = ["CACHE_SCHEMA_VERSION", "CacheEntry", "ResolutionCache"]

# ------------------------------------------------------------------ #
# On-disk layout (JSON5)
# ------------------------------------------------------------------ #
# {
#   "schemaVersion": 1,
#   "entries": {
#     "modrinth:AANobbMI:4GyXKCLd": {
#       "platform": "modrinth", "projectId": "AANobbMI", "versionId": "4GyXKCLd",
#       "metadata": { ...ModMetadata... },
#       "fetchedAt": 1760000000000
#     }
#   }
# }
#
# Only successful resolutions are ever written. The whole document is rewritten
# on every put (temp file + os.replace), so a reader never sees a torn file.
#

CACHE_SCHEMA_VERSION = 1



class CacheEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    platform: Platform
    projectId: str
    versionId: str | None = None
    metadata: ModMetadata
    fetchedAt: int

    @property
    def reference(self) -> ModReference:
        return ModReference(self.platform, self.projectId, self.versionId)



class ResolutionCache:
    """
    Persistent (platform, project, version) → ModMetadata map.

    Lifecycle is explicit: load() once at start, put() flushes to disk after
    every successful resolution. get() never touches the disk.
    Safe for concurrent use from asyncio tasks of one event loop: puts are
    serialized by a lock, and the in-memory swap happens before the flush.
    """
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._loaded = False

    # ----- Loading -----

    def load(self) -> ResolutionCache:
        """
        Reads the store from disk.

        Missing file → empty cache. Corrupt document, unknown schema version,
        or invalid entries → logged and dropped (the next put rewrites the file).
        Raises CacheIOFailure when the file exists but cannot be read.
        """
        self._entries.clear()
        self._loaded = True

        if not self.path.exists():
            logger.debug("Cache '%s' is missing → starting empty", self.path)
            return self

        if not self.path.is_file():
            raise CacheIOFailure(self.path, "Cache path exists but is not a file")

        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as err:
            raise CacheIOFailure(self.path, f"Cannot read cache: {err}") from err

        try:
            doc = json5.loads(text)
        except ValueError as err:
            logger.warning("Cache '%s' is corrupt, starting empty: %s", self.path, err)
            return self

        if not isinstance(doc, dict) or doc.get("schemaVersion") != CACHE_SCHEMA_VERSION:
            logger.warning("Cache '%s' has an unknown layout, starting empty", self.path)
            return self

        rawEntries = doc.get("entries")
        if not isinstance(rawEntries, dict):
            logger.warning("Cache '%s' has no entries table, starting empty", self.path)
            return self

        dropped = 0
        for key, raw in rawEntries.items():
            try:
                entry = CacheEntry.model_validate(raw)
            except ValidationError as err:
                dropped += 1
                logger.warning("Dropping invalid cache entry '%s': %s", key, err.errors()[0].get("msg", err))
                continue
            self._entries[entry.reference.cacheKey] = entry

        logger.info("Loaded %d cache entr%s from '%s'%s",
            len(self._entries),
            "y" if len(self._entries) == 1 else "ies",
            self.path,
            f" ({dropped} dropped)" if dropped else "",
        )
        return self

    # ----- Access -----

    def get(self, reference: ModReference) -> ModMetadata | None:
        entry = self._entries.get(reference.cacheKey)
        return entry.metadata if entry is not None else None

    async def put(self, reference: ModReference, metadata: ModMetadata) -> CacheEntry:
        """
        Stores a successful resolution and flushes the store to disk.
        Overwrites any previous entry under the same key.
        Raises CacheIOFailure when the store cannot be written.
        """
        entry = CacheEntry(
            platform=reference.platform,
            projectId=reference.projectId,
            versionId=reference.versionId,
            metadata=metadata,
            fetchedAt=nowMs(),
        )
        async with self._lock:
            self._entries[reference.cacheKey] = entry
            document = self._document()
            await asyncio.to_thread(self._flush, document)
        return entry

    def entries(self) -> Iterator[CacheEntry]:
        for key in sorted(self._entries):
            yield self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, reference: object) -> bool:
        return isinstance(reference, ModReference) and reference.cacheKey in self._entries

    # ----- Persistence -----

    def _document(self) -> dict[str, Any]:
        return {
            "schemaVersion": CACHE_SCHEMA_VERSION,
            "entries": {
                key: self._entries[key].model_dump(mode="json")
                for key in sorted(self._entries)
            },
        }

    def _flush(self, document: dict[str, Any]) -> None:
        tmpPath = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            out = json5.dumps(document, indent=2, quote_keys=True, ensure_ascii=False)
            with open(tmpPath, "w", encoding="utf-8") as fl:
                fl.write(out)
                fl.write("\n")
                fl.flush()
                os.fsync(fl.fileno())
            os.replace(tmpPath, self.path)
        except OSError as err:
            tmpPath.unlink(missing_ok=True)
            raise CacheIOFailure(self.path, f"Cannot write cache: {err}") from err
        logger.debug("Flushed %d cache entries to '%s'", len(document["entries"]), self.path)
