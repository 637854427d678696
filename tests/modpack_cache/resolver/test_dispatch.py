import httpx
import pytest

from modpack_cache.core.errors import NotFound
from modpack_cache.definitions.types import ModMetadata, ModReference, Platform
from modpack_cache.resolver import dispatch
from modpack_cache.resolver.context import ResolveContext


def test_table_covers_api_platforms():
    assert set(dispatch.RESOLVERS) == {Platform.MODRINTH, Platform.CURSEFORGE}


@pytest.mark.asyncio
async def test_resolve_dispatches_on_platform(monkeypatch):
    seen: list[ModReference] = []

    async def fake(reference, context):
        seen.append(reference)
        return ModMetadata(displayName="X", versionLabel="1", canonicalUrl="https://example.org/x")

    monkeypatch.setitem(dispatch.RESOLVERS, Platform.MODRINTH, fake)
    context = ResolveContext(client=httpx.AsyncClient())
    reference = ModReference(Platform.MODRINTH, "x")

    metadata = await dispatch.resolve(reference, context)

    assert metadata.displayName == "X"
    assert seen == [reference]
    await context.client.aclose()


@pytest.mark.asyncio
async def test_resolve_unknown_platform_is_not_found():
    context = ResolveContext(client=httpx.AsyncClient())
    with pytest.raises(NotFound):
        await dispatch.resolve(ModReference(Platform.URL, "https://example.org/x.jar"), context)
    await context.client.aclose()
