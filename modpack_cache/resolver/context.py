# modpack_cache/resolver/context.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from modpack_cache.config.settings import CurseForgeSettings, HttpSettings, ModrinthSettings
from modpack_cache.core.errors import InvalidResponse, NotFound, RateLimited, Transient, Unauthorized
from modpack_cache.definitions.types import ModReference
from modpack_cache.http.client import HTTPError, requestWithSettings

logger = logging.getLogger(__name__)

__all__ = ["ResolveContext", "fetchJson"]



@dataclass
class ResolveContext:
    """Everything a platform resolver may touch. Built once per run."""
    client: httpx.AsyncClient
    http: HttpSettings = field(default_factory=HttpSettings)
    modrinth: ModrinthSettings = field(default_factory=ModrinthSettings)
    curseforge: CurseForgeSettings = field(default_factory=CurseForgeSettings)



async def fetchJson(
    context: ResolveContext,
    reference: ModReference,
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    json: Any | None = None,
) -> Any:
    """
    Performs one API call and translates every failure into the ResolveError taxonomy:

      • 404/410                          → NotFound
      • 401/403                          → Unauthorized
      • 429 (retries exhausted)          → RateLimited
      • 408/5xx, timeouts, transport     → Transient
      • other 4xx, non-JSON body         → InvalidResponse
    """
    try:
        resp = await requestWithSettings(
            method,
            url,
            context.http,
            client=context.client,
            headers=headers,
            params=params,
            json=json,
        )
    except HTTPError as err:
        if err.status == 429:
            raise RateLimited(reference, f"Rate limited by {url}", status=err.status) from err
        raise Transient(reference, f"HTTP {err.status} from {url}", status=err.status) from err
    except httpx.HTTPError as err:
        raise Transient(reference, f"{type(err).__name__} calling {url}: {err}") from err

    status = resp["status"]
    if status in (404, 410):
        raise NotFound(reference, f"{reference} does not exist upstream ({url})", status=status)
    if status in (401, 403):
        raise Unauthorized(reference, f"Access denied by {url}", status=status)
    if status >= 400:
        raise InvalidResponse(reference, f"HTTP {status} from {url}: {resp['text'][:200]}", status=status)
    if "json" not in resp:
        raise InvalidResponse(reference, f"Expected JSON from {url}", status=status)
    return resp["json"]
