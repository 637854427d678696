# modpack_cache/manifest/__init__.py
from .emitter import emitManifest, manifestEntry, renderManifest
from .schema import MANIFEST_SCHEMA, validateManifest

__all__ = ["emitManifest", "manifestEntry", "renderManifest", "MANIFEST_SCHEMA", "validateManifest"]
