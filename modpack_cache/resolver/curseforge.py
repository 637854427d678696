# modpack_cache/resolver/curseforge.py
from __future__ import annotations
import logging
import re
from collections.abc import Mapping
from typing import Any

from modpack_cache.core.errors import InvalidResponse, NotFound, Unauthorized
from modpack_cache.core.redaction import addSecret
from modpack_cache.definitions.types import ModMetadata, ModReference, Side
from .context import ResolveContext, fetchJson
from .versions import CURSEFORGE_MOD_LOADERS, normalizeGameVersions, normalizeLoaders

logger = logging.getLogger(__name__)

__all__ = ["resolveCurseForge", "normalizeCurseForge", "curseForgeSide", "curseForgeLoaders"]

# Call sequence:
#   GET {apiBase}/mods/search?gameId=432&slug={slug}   (only when projectId is not numeric)
#   GET {apiBase}/mods/{modId}
#   GET {apiBase}/mods/{modId}/files/{fileId}          (pinned only)
# Every call carries the `x-api-key` header.

_NUMERIC_ID_RE = re.compile(r"\d+", re.ASCII)



def curseForgeSide(gameVersions: Any) -> Side:
    """CurseForge tags files with "Client"/"Server" among the game versions, when it tags them at all."""
    if not isinstance(gameVersions, list):
        return Side.BOTH
    tags = {str(v).strip().lower() for v in gameVersions if isinstance(v, str)}
    client = "client" in tags
    server = "server" in tags
    if client and not server:
        return Side.CLIENT
    if server and not client:
        return Side.SERVER
    return Side.BOTH



def curseForgeLoaders(codes: Any, gameVersions: Any = None) -> list[str]:
    names: list[str] = []
    for code in codes or []:
        if isinstance(code, int) and code in CURSEFORGE_MOD_LOADERS and code != 0:
            names.append(CURSEFORGE_MOD_LOADERS[code])
    # Files list their loader by name among the game versions
    if isinstance(gameVersions, list):
        known = set(CURSEFORGE_MOD_LOADERS.values())
        names.extend(str(v) for v in gameVersions if isinstance(v, str) and v.strip().lower() in known)
    return normalizeLoaders(names)



def _newestFile(files: Any) -> Mapping[str, Any] | None:
    if not isinstance(files, list):
        return None
    candidates = [f for f in files if isinstance(f, Mapping)]
    if not candidates:
        return None
    return max(candidates, key=lambda f: str(f.get("fileDate") or ""))



def _authorOf(mod: Mapping[str, Any]) -> str | None:
    authors = mod.get("authors")
    if not isinstance(authors, list):
        return None
    for author in authors:
        if isinstance(author, Mapping) and isinstance(author.get("name"), str) and author["name"]:
            return author["name"]
    return None



def normalizeCurseForge(
    reference: ModReference,
    mod: Any,
    file: Mapping[str, Any] | None,
) -> ModMetadata:
    """
    Folds a `/mods/{id}` payload (+ the chosen file) into ModMetadata.

    With a file, game versions/loaders/side come from that file's tags.
    Without one, from `latestFilesIndexes` and side falls back to both.
    """
    if not isinstance(mod, Mapping):
        raise InvalidResponse(reference, "CurseForge mod payload is not an object")

    name = mod.get("name")
    if not isinstance(name, str) or not name:
        raise InvalidResponse(reference, "CurseForge mod payload lacks 'name'")

    links = mod.get("links") if isinstance(mod.get("links"), Mapping) else {}
    url = links.get("websiteUrl")
    if not isinstance(url, str) or not url:
        slug = mod.get("slug")
        if not isinstance(slug, str) or not slug:
            raise InvalidResponse(reference, "CurseForge mod payload lacks both 'links.websiteUrl' and 'slug'")
        url = f"https://www.curseforge.com/minecraft/mc-mods/{slug}"

    if file is not None:
        fileVersions = file.get("gameVersions") or []
        versionLabel = file.get("displayName") or file.get("fileName") or "unknown"
        gameVersions = normalizeGameVersions(fileVersions)
        loaders = curseForgeLoaders([], fileVersions)
        side = curseForgeSide(fileVersions)
    else:
        indexes = [i for i in (mod.get("latestFilesIndexes") or []) if isinstance(i, Mapping)]
        versionLabel = "unknown"
        gameVersions = normalizeGameVersions(i.get("gameVersion") for i in indexes)
        loaders = curseForgeLoaders([i.get("modLoader") for i in indexes])
        side = Side.BOTH

    return ModMetadata(
        displayName=name,
        versionLabel=str(versionLabel),
        author=_authorOf(mod),
        canonicalUrl=url,
        side=side,
        gameVersions=gameVersions,
        loaders=loaders,
    )



async def _lookupSlug(context: ResolveContext, reference: ModReference, headers: dict[str, str]) -> int:
    apiBase = context.curseforge.apiBase.rstrip("/")
    payload = await fetchJson(
        context, reference, "GET", f"{apiBase}/mods/search",
        headers=headers,
        params={"gameId": context.curseforge.gameId, "slug": reference.projectId},
    )
    data = payload.get("data") if isinstance(payload, Mapping) else None
    if not isinstance(data, list):
        raise InvalidResponse(reference, "CurseForge search payload lacks 'data'")
    wanted = reference.projectId.lower()
    for hit in data:
        if isinstance(hit, Mapping) and str(hit.get("slug", "")).lower() == wanted and isinstance(hit.get("id"), int):
            logger.debug("Slug '%s' is CurseForge mod %d", reference.projectId, hit["id"])
            return hit["id"]
    raise NotFound(reference, f"No CurseForge mod with slug '{reference.projectId}'")



def _data(reference: ModReference, payload: Any, what: str) -> Mapping[str, Any]:
    data = payload.get("data") if isinstance(payload, Mapping) else None
    if not isinstance(data, Mapping):
        raise InvalidResponse(reference, f"CurseForge {what} payload lacks 'data'")
    return data



async def resolveCurseForge(reference: ModReference, context: ResolveContext) -> ModMetadata:
    apiKey = context.curseforge.apiKey
    if not apiKey:
        raise Unauthorized(reference, "CurseForge API key is not configured (set FORGE_API_KEY)")
    addSecret(apiKey)
    headers = {"x-api-key": apiKey}
    apiBase = context.curseforge.apiBase.rstrip("/")

    if _NUMERIC_ID_RE.fullmatch(reference.projectId):
        modId = int(reference.projectId)
    else:
        modId = await _lookupSlug(context, reference, headers)
    mod = _data(reference, await fetchJson(context, reference, "GET", f"{apiBase}/mods/{modId}", headers=headers), "mod")

    file: Mapping[str, Any] | None
    if reference.versionId:
        payload = await fetchJson(context, reference, "GET", f"{apiBase}/mods/{modId}/files/{reference.versionId}", headers=headers)
        file = _data(reference, payload, "file")
    else:
        file = _newestFile(mod.get("latestFiles"))

    return normalizeCurseForge(reference, mod, file)
