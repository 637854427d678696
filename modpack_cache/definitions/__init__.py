# modpack_cache/definitions/__init__.py
from .types import Platform, Side, ModReference, ModMetadata, Definition
from .parser import parseDefinition, readDefinition, extractReferenceFromUrl
from .discover import discoverDefinitions

__all__ = [
    "Platform",
    "Side",
    "ModReference",
    "ModMetadata",
    "Definition",
    "parseDefinition",
    "readDefinition",
    "extractReferenceFromUrl",
    "discoverDefinitions",
]
