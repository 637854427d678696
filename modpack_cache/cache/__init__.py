# modpack_cache/cache/__init__.py
from .store import CACHE_SCHEMA_VERSION, CacheEntry, ResolutionCache

__all__ = ["CACHE_SCHEMA_VERSION", "CacheEntry", "ResolutionCache"]
