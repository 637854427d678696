# modpack_cache/resolver/modrinth.py
from __future__ import annotations
import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from modpack_cache.core.errors import InvalidResponse, NotFound
from modpack_cache.definitions.types import ModMetadata, ModReference, Side
from .context import ResolveContext, fetchJson
from .versions import normalizeGameVersions, normalizeLoaders

logger = logging.getLogger(__name__)

__all__ = ["resolveModrinth", "normalizeModrinthSide", "normalizeModrinth", "pickOwner"]

# Call sequence:
#   GET {apiBase}/project/{id}
#   GET {apiBase}/project/{id}/version/{versionId}   (pinned)  or  GET {apiBase}/project/{id}/version
#   GET {apiBase}/team/{teamId}/members             (author; missing team → no author)

_CLIENT_ONLY = {("required", "unsupported"), ("optional", "unsupported")}
_SERVER_ONLY = {("unsupported", "required"), ("unsupported", "optional")}



def normalizeModrinthSide(clientSide: Any, serverSide: Any) -> Side:
    pair = (str(clientSide), str(serverSide))
    if pair in _CLIENT_ONLY:
        return Side.CLIENT
    if pair in _SERVER_ONLY:
        return Side.SERVER
    return Side.BOTH



def pickOwner(members: Any) -> str | None:
    """Owner's username, else the first listed member's, else None."""
    if not isinstance(members, list):
        return None
    users = [m for m in members if isinstance(m, Mapping) and isinstance(m.get("user"), Mapping)]
    if not users:
        return None
    owner = next((m for m in users if m.get("is_owner") is True or m.get("role") == "Owner"), None)
    if owner is None:
        owner = sorted(users, key=lambda m: m.get("ordering") if isinstance(m.get("ordering"), int) else 0)[0]
    user = owner["user"]
    name = user.get("username") or user.get("name")
    return str(name) if name else None



def _latest(versions: Any) -> Mapping[str, Any] | None:
    if not isinstance(versions, list):
        return None
    candidates = [v for v in versions if isinstance(v, Mapping)]
    if not candidates:
        return None
    return max(candidates, key=lambda v: str(v.get("date_published") or ""))



def normalizeModrinth(
    reference: ModReference,
    project: Any,
    version: Mapping[str, Any] | None,
    author: str | None,
    *,
    siteBase: str,
) -> ModMetadata:
    """
    Folds the project (+ version) payloads into ModMetadata.
    Game versions and loaders come from the pinned version when there is one,
    otherwise from the project.
    """
    if not isinstance(project, Mapping):
        raise InvalidResponse(reference, "Modrinth project payload is not an object")

    title = project.get("title")
    slug = project.get("slug") or project.get("id")
    if not isinstance(title, str) or not title or not isinstance(slug, str) or not slug:
        raise InvalidResponse(reference, "Modrinth project payload lacks 'title' or 'slug'")

    projectType = project.get("project_type") or "mod"
    source = version if version is not None else project
    versionLabel = (version or {}).get("version_number") or (version or {}).get("name") or "unknown"

    return ModMetadata(
        displayName=title,
        versionLabel=str(versionLabel),
        author=author,
        canonicalUrl=f"{siteBase.rstrip('/')}/{projectType}/{slug}",
        side=normalizeModrinthSide(project.get("client_side"), project.get("server_side")),
        gameVersions=normalizeGameVersions(source.get("game_versions") or []),
        loaders=normalizeLoaders(source.get("loaders") or []),
    )



async def _fetchAuthor(context: ResolveContext, reference: ModReference, teamId: Any) -> str | None:
    if not isinstance(teamId, str) or not teamId:
        return None
    apiBase = context.modrinth.apiBase.rstrip("/")
    try:
        members = await fetchJson(context, reference, "GET", f"{apiBase}/team/{quote(teamId, safe='')}/members")
    except NotFound:
        logger.debug("Team '%s' of %s not found, leaving author empty", teamId, reference)
        return None
    return pickOwner(members)



async def _fetchVersion(context: ResolveContext, reference: ModReference) -> Mapping[str, Any] | None:
    apiBase = context.modrinth.apiBase.rstrip("/")
    projectPath = f"{apiBase}/project/{quote(reference.projectId, safe='')}"
    if reference.versionId:
        version = await fetchJson(context, reference, "GET", f"{projectPath}/version/{quote(reference.versionId, safe='')}")
        if not isinstance(version, Mapping):
            raise InvalidResponse(reference, "Modrinth version payload is not an object")
        return version
    return _latest(await fetchJson(context, reference, "GET", f"{projectPath}/version"))



async def resolveModrinth(reference: ModReference, context: ResolveContext) -> ModMetadata:
    apiBase = context.modrinth.apiBase.rstrip("/")
    project = await fetchJson(context, reference, "GET", f"{apiBase}/project/{quote(reference.projectId, safe='')}")
    if not isinstance(project, Mapping):
        raise InvalidResponse(reference, "Modrinth project payload is not an object")

    version = await _fetchVersion(context, reference)
    author = await _fetchAuthor(context, reference, project.get("team"))
    return normalizeModrinth(reference, project, version, author, siteBase=context.modrinth.siteBase)
