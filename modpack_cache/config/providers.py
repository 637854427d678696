# modpack_cache/config/providers.py
from __future__ import annotations
import copy
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol, cast

import json5

from modpack_cache.core.dictpath import setByPath, deleteByPath
from modpack_cache.core.errors import ConfigError

logger = logging.getLogger(__name__)

__all__ = ["ConfigProvider", "OverrideProvider", "DefaultsProvider", "FileProvider"]



class ConfigProvider(Protocol):
    def to_dict(self) -> dict[str, Any]: ...


# ----------------------------------------------
#          OverrideProvider (in-memory)
# ----------------------------------------------

class OverrideProvider:
    """
    Volatile, writable, topmost override layer (environment + command line).
    Never saved to disk.
    """
    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        if value is None:
            deleteByPath(self._data, key, pruneEmptyParents=True)
            return

        setByPath(self._data, key, copy.deepcopy(value), createIfMissing=True)

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)


# ----------------------------------------------
#       Read-only shipped defaults
# ----------------------------------------------

class DefaultsProvider:
    """
    Read-only provider for shipped default configuration.

    Example:
        DefaultsProvider(data=defaultSettingsData())

    Raises:
        TypeError: if `data` is not a Mapping
    """
    def __init__(self, data: Mapping[str, Any]) -> None:
        if not isinstance(data, Mapping):
            raise TypeError(f"{type(self).__name__}: 'data' must be a Mapping, not '{type(data).__name__}'")
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        # Always return a deep copy to prevent accidental mutation
        return copy.deepcopy(dict(self.data))


# ----------------------------------------------
#        File-backed provider JSON/JSON5
# ----------------------------------------------

class FileProvider:
    """
    Read-only configuration layer loaded from a .json or .json5 file.

    Behavior:
        • Missing file → ConfigError when strict, empty dict otherwise
        • Parse error → ConfigError (a half-read config would silently change behavior)
        • Non-object JSON → ConfigError
    """
    def __init__(self, path: str | Path, *, strict: bool = True) -> None:
        self.path = Path(path)
        self.strict = strict
        self._data: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        self._data.clear()

        if not self.path.exists():
            if self.strict:
                raise ConfigError(f"{type(self).__name__}: config file '{self.path}' not found")
            logger.debug("%s: '%s' is missing → starting as empty dict", type(self).__name__, self.path)
            return

        if not self.path.is_file():
            raise ConfigError(f"{type(self).__name__}: '{self.path}' exists but is not a file")

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as err:
            raise ConfigError(f"{type(self).__name__}: failed to read '{self.path}': {err}") from err

        try:
            parsed = json5.loads(text)
        except ValueError as err:
            raise ConfigError(f"{type(self).__name__}: parse failed for '{self.path}': {err}") from err

        if parsed is None:
            logger.debug("%s: parsed is None, starting as empty dict", type(self).__name__)
            parsed = {}

        if not isinstance(parsed, Mapping):
            raise ConfigError(
                f"{type(self).__name__}: file content must be a JSON object, not '{type(parsed).__name__}'"
            )

        self._data = dict(cast(Mapping[str, Any], parsed))
        logger.debug("%s: loaded %d top-level keys from '%s'", type(self).__name__, len(self._data), self.path)

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)
