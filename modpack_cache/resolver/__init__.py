# modpack_cache/resolver/__init__.py
from .context import ResolveContext, fetchJson
from .curseforge import normalizeCurseForge, resolveCurseForge
from .dispatch import RESOLVERS, ResolveFn, resolve
from .modrinth import normalizeModrinth, resolveModrinth

__all__ = [
    "ResolveContext", "fetchJson",
    "RESOLVERS", "ResolveFn", "resolve",
    "resolveModrinth", "normalizeModrinth",
    "resolveCurseForge", "normalizeCurseForge",
]
