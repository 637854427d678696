# modpack_cache/resolver/dispatch.py
from __future__ import annotations
import logging
from collections.abc import Awaitable, Callable

from modpack_cache.core.errors import NotFound
from modpack_cache.definitions.types import ModMetadata, ModReference, Platform
from .context import ResolveContext
from .curseforge import resolveCurseForge
from .modrinth import resolveModrinth

logger = logging.getLogger(__name__)

__all__ = ["ResolveFn", "RESOLVERS", "resolve"]

ResolveFn = Callable[[ModReference, ResolveContext], Awaitable[ModMetadata]]

# Hosted-elsewhere (Platform.URL) definitions carry their own metadata and never get here
RESOLVERS: dict[Platform, ResolveFn] = {
    Platform.MODRINTH: resolveModrinth,
    Platform.CURSEFORGE: resolveCurseForge,
}



async def resolve(reference: ModReference, context: ResolveContext) -> ModMetadata:
    """Resolves one reference through its platform's resolver. Raises ResolveError."""
    resolver = RESOLVERS.get(reference.platform)
    if resolver is None:
        raise NotFound(reference, f"No resolver for platform '{reference.platform.value}'")
    logger.debug("Resolving %s", reference)
    return await resolver(reference, context)
