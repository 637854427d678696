# modpack_cache/core/errors.py
from __future__ import annotations
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modpack_cache.definitions.types import ModReference

__all__ = [
    "ModpackCacheError", "ConfigError",
    "MalformedDefinition", "DuplicateDefinition",
    "ResolveError", "NotFound", "Unauthorized", "RateLimited", "Transient", "InvalidResponse",
    "IOFailure", "InputIOFailure", "CacheIOFailure", "ManifestIOFailure",
]



class ModpackCacheError(Exception):
    """Base class for everything cache_modpack raises on purpose."""
    kind = "Error"



class ConfigError(ModpackCacheError):
    """Configuration file or values could not be loaded or validated."""
    kind = "ConfigError"


# ------------------------------------------------------------------ #
# Per-entry failures (recorded, never fatal)
# ------------------------------------------------------------------ #

class MalformedDefinition(ModpackCacheError):
    """A definition file is unreadable or carries no usable project identifier."""
    kind = "MalformedDefinition"

    def __init__(self, path: str | Path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = str(path)
        self.reason = reason



class DuplicateDefinition(MalformedDefinition):
    """A second definition points at a project that is already in the manifest."""
    kind = "DuplicateDefinition"



class ResolveError(ModpackCacheError):
    """Resolution of a single reference failed upstream."""
    kind = "ResolveError"

    def __init__(self, reference: ModReference | None, message: str, *, status: int | None = None):
        super().__init__(message)
        self.reference = reference
        self.message = message
        self.status = status



class NotFound(ResolveError):
    kind = "NotFound"



class Unauthorized(ResolveError):
    kind = "Unauthorized"



class RateLimited(ResolveError):
    kind = "RateLimited"



class Transient(ResolveError):
    """Timeouts, connection failures and 5xx that outlived the retry budget."""
    kind = "Transient"



class InvalidResponse(ResolveError):
    """Upstream answered, but not with something we can normalize."""
    kind = "InvalidResponse"


# ------------------------------------------------------------------ #
# Storage failures (fatal)
# ------------------------------------------------------------------ #

class IOFailure(ModpackCacheError):
    """Reading the input or writing cache/manifest failed. Aborts the run."""
    kind = "IOFailure"

    def __init__(self, path: str | Path, message: str):
        super().__init__(f"{message} ('{path}')")
        self.path = str(path)



class InputIOFailure(IOFailure):
    kind = "InputIOFailure"



class CacheIOFailure(IOFailure):
    kind = "CacheIOFailure"



class ManifestIOFailure(IOFailure):
    kind = "ManifestIOFailure"
