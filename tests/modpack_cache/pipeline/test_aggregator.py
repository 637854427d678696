import asyncio
import random

import httpx
import pytest

from modpack_cache.cache.store import ResolutionCache
from modpack_cache.config.settings import ManifestSettings, ResolverSettings
from modpack_cache.core.errors import CacheIOFailure, InputIOFailure, NotFound
from modpack_cache.definitions.types import ModMetadata, Platform, Side
from modpack_cache.manifest.emitter import renderManifest
from modpack_cache.pipeline.aggregator import Aggregator


def _modrinthDef(projectId: str, version: str | None = None) -> str:
    text = f'name = "{projectId}"\nfilename = "{projectId}.jar"\nside = "both"\n\n[update.modrinth]\nmod-id = "{projectId}"\n'
    if version:
        text += f'version = "{version}"\n'
    return text


def _meta(reference) -> ModMetadata:
    return ModMetadata(
        displayName=f"Mod {reference.projectId}",
        versionLabel=reference.versionId or "1.0",
        canonicalUrl=f"https://modrinth.com/mod/{reference.projectId.lower()}",
    )


class StubResolver:
    """Records calls; optional per-project delays and failures."""
    def __init__(self, *, delays=None, failures=None):
        self.calls = []
        self.delays = delays or {}
        self.failures = failures or {}

    async def __call__(self, reference, context):
        self.calls.append(reference)
        await asyncio.sleep(self.delays.get(reference.projectId, 0))
        if reference.projectId in self.failures:
            raise self.failures[reference.projectId](reference, f"{reference.projectId} failed")
        return _meta(reference)


def _aggregator(settings, resolver, mockClient):
    cache = ResolutionCache(settings.cache.path).load()
    client = mockClient(lambda request: httpx.Response(500))
    return Aggregator(settings, cache, resolveFn=resolver, client=client), cache


@pytest.mark.asyncio
async def test_manifest_keeps_file_order_under_jitter(fastSettings, writeDefinition, packDir, mockClient):
    names = [f"mod{index:02d}" for index in range(12)]
    for name in names:
        writeDefinition(f"mods/{name}.pw.toml", _modrinthDef(name))
    rng = random.Random(7)
    resolver = StubResolver(delays={name: rng.uniform(0, 0.02) for name in names})
    settings = fastSettings.model_copy(update={"resolver": ResolverSettings(maxConcurrency=4)})

    aggregator, cache = _aggregator(settings, resolver, mockClient)
    report = await aggregator.run(packDir)

    assert [entry.displayName for entry in report.manifest] == [f"Mod {name}" for name in names]
    assert report.ok
    assert report.resolved == 12
    assert len(cache) == 12


@pytest.mark.asyncio
async def test_concurrency_is_bounded(fastSettings, writeDefinition, packDir, mockClient):
    for index in range(10):
        writeDefinition(f"mods/m{index}.pw.toml", _modrinthDef(f"m{index}"))
    inFlight = 0
    peak = 0

    async def resolver(reference, context):
        nonlocal inFlight, peak
        inFlight += 1
        peak = max(peak, inFlight)
        await asyncio.sleep(0.01)
        inFlight -= 1
        return _meta(reference)

    settings = fastSettings.model_copy(update={"resolver": ResolverSettings(maxConcurrency=3)})
    aggregator, _ = _aggregator(settings, resolver, mockClient)
    await aggregator.run(packDir)

    assert peak == 3


@pytest.mark.asyncio
async def test_warm_run_hits_cache_and_is_byte_identical(fastSettings, writeDefinition, packDir, mockClient):
    writeDefinition("mods/a.pw.toml", _modrinthDef("aaa", "v1"))
    writeDefinition("mods/b.pw.toml", _modrinthDef("bbb"))

    first = StubResolver()
    aggregator, _ = _aggregator(fastSettings, first, mockClient)
    cold = await aggregator.run(packDir)
    assert len(first.calls) == 2

    second = StubResolver(failures={"aaa": NotFound, "bbb": NotFound})
    aggregator, _ = _aggregator(fastSettings, second, mockClient)
    warm = await aggregator.run(packDir)

    assert second.calls == []
    assert warm.cacheHits == 2
    assert warm.resolved == 0
    assert renderManifest(warm.manifest) == renderManifest(cold.manifest)


@pytest.mark.asyncio
async def test_one_malformed_definition_is_skipped(fastSettings, writeDefinition, packDir, mockClient):
    writeDefinition("mods/a.pw.toml", _modrinthDef("aaa"))
    writeDefinition("mods/b.pw.toml", 'name = "broken"\n')
    writeDefinition("mods/c.pw.toml", _modrinthDef("ccc"))

    aggregator, _ = _aggregator(fastSettings, StubResolver(), mockClient)
    report = await aggregator.run(packDir)

    assert [entry.displayName for entry in report.manifest] == ["Mod aaa", "Mod ccc"]
    assert len(report.failures) == 1
    assert report.failures[0].relPath == "mods/b.pw.toml"
    assert report.failures[0].kind == "MalformedDefinition"
    assert not report.ok


@pytest.mark.asyncio
async def test_resolve_errors_are_recorded_and_not_cached(fastSettings, writeDefinition, packDir, mockClient):
    writeDefinition("mods/a.pw.toml", _modrinthDef("aaa"))
    writeDefinition("mods/b.pw.toml", _modrinthDef("bbb"))

    aggregator, cache = _aggregator(fastSettings, StubResolver(failures={"bbb": NotFound}), mockClient)
    report = await aggregator.run(packDir)

    assert [entry.displayName for entry in report.manifest] == ["Mod aaa"]
    assert [(failure.relPath, failure.kind) for failure in report.failures] == [("mods/b.pw.toml", "NotFound")]
    assert len(cache) == 1
    assert len(ResolutionCache(fastSettings.cache.path).load()) == 1


@pytest.mark.asyncio
async def test_slow_resolution_times_out_as_transient(fastSettings, writeDefinition, packDir, mockClient):
    writeDefinition("mods/a.pw.toml", _modrinthDef("aaa"))
    writeDefinition("mods/slow.pw.toml", _modrinthDef("slow"))
    settings = fastSettings.model_copy(update={"resolver": ResolverSettings(resolveTimeoutMs=20)})

    aggregator, _ = _aggregator(settings, StubResolver(delays={"slow": 5}), mockClient)
    report = await aggregator.run(packDir)

    assert [entry.displayName for entry in report.manifest] == ["Mod aaa"]
    assert report.failures[0].kind == "Transient"


@pytest.mark.asyncio
async def test_duplicate_project_is_reported(fastSettings, writeDefinition, packDir, mockClient):
    writeDefinition("mods/a.pw.toml", _modrinthDef("Sodium"))
    writeDefinition("mods/b.pw.toml", _modrinthDef("sodium", "other"))

    resolver = StubResolver()
    aggregator, _ = _aggregator(fastSettings, resolver, mockClient)
    report = await aggregator.run(packDir)

    assert len(report.manifest) == 1
    assert len(resolver.calls) == 1
    assert report.failures[0].relPath == "mods/b.pw.toml"
    assert report.failures[0].kind == "DuplicateDefinition"


@pytest.mark.asyncio
async def test_duplicate_canonical_url_is_reported(fastSettings, writeDefinition, packDir, mockClient):
    writeDefinition("mods/a.pw.toml", _modrinthDef("AANobbMI"))
    writeDefinition("mods/b.pw.toml", 'source = "https://modrinth.com/mod/sodium"\n')

    async def resolver(reference, context):
        return ModMetadata(displayName="Sodium", versionLabel="1", canonicalUrl="https://modrinth.com/mod/sodium")

    aggregator, _ = _aggregator(fastSettings, resolver, mockClient)
    report = await aggregator.run(packDir)

    assert len(report.manifest) == 1
    assert [(failure.relPath, failure.kind) for failure in report.failures] == [("mods/b.pw.toml", "DuplicateDefinition")]


@pytest.mark.asyncio
async def test_inline_definitions_skip_resolution(fastSettings, writeDefinition, packDir, mockClient):
    writeDefinition("mods/custom.pw.toml", """\
name = "Custom"
version = "3.0"
side = "client"

[download]
url = "https://example.org/custom.jar"
""")
    resolver = StubResolver()
    aggregator, cache = _aggregator(fastSettings, resolver, mockClient)
    report = await aggregator.run(packDir)

    assert resolver.calls == []
    assert report.inline == 1
    assert report.manifest[0].side is Side.CLIENT
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_name_ordering(fastSettings, writeDefinition, packDir, mockClient):
    writeDefinition("mods/1.pw.toml", _modrinthDef("zeta"))
    writeDefinition("mods/2.pw.toml", _modrinthDef("Alpha"))
    writeDefinition("mods/3.pw.toml", _modrinthDef("beta"))
    settings = fastSettings.model_copy(update={"manifest": ManifestSettings(order="name")})

    aggregator, _ = _aggregator(settings, StubResolver(), mockClient)
    report = await aggregator.run(packDir)

    assert [entry.displayName for entry in report.manifest] == ["Mod Alpha", "Mod beta", "Mod zeta"]


@pytest.mark.asyncio
async def test_cache_write_failure_is_fatal(fastSettings, writeDefinition, packDir, mockClient, monkeypatch):
    for index in range(5):
        writeDefinition(f"mods/m{index}.pw.toml", _modrinthDef(f"m{index}"))

    aggregator, cache = _aggregator(fastSettings, StubResolver(delays={"m0": 0, "m1": 0.5, "m2": 0.5}), mockClient)

    async def broken_put(reference, metadata):
        raise CacheIOFailure(cache.path, "disk full")

    monkeypatch.setattr(cache, "put", broken_put)

    with pytest.raises(CacheIOFailure):
        await aggregator.run(packDir)


@pytest.mark.asyncio
async def test_missing_input_is_fatal(fastSettings, tmp_path, mockClient):
    aggregator, _ = _aggregator(fastSettings, StubResolver(), mockClient)
    with pytest.raises(InputIOFailure):
        await aggregator.run(tmp_path / "missing")


@pytest.mark.asyncio
async def test_end_to_end_curseforge_and_modrinth(fastSettings, writeDefinition, packDir, mockClient):
    writeDefinition("mods/a-jei.pw.toml", """\
name = "JEI"
filename = "jei.jar"
side = "both"

[update.curseforge]
project-id = 123
""")
    writeDefinition("mods/b-sodium.pw.toml", _modrinthDef("abc"))

    def handler(request: httpx.Request) -> httpx.Response:
        routes = {
            "/v1/mods/123": {"data": {
                "id": 123, "name": "JEI", "slug": "jei",
                "links": {"websiteUrl": "https://www.curseforge.com/minecraft/mc-mods/jei"},
                "authors": [{"name": "mezz"}],
                "latestFiles": [{"displayName": "jei-15.3", "fileDate": "2024-01-01T00:00:00Z", "gameVersions": ["1.20.1", "Forge"]}],
            }},
            "/v2/project/abc": {"title": "Sodium", "slug": "sodium", "project_type": "mod", "team": "t",
                                "client_side": "required", "server_side": "unsupported"},
            "/v2/project/abc/version": [{"version_number": "0.5.8", "date_published": "2024-02-01T00:00:00Z"}],
            "/v2/team/t/members": [{"role": "Owner", "user": {"username": "jellysquid3"}}],
        }
        if request.url.path not in routes:
            return httpx.Response(404, json={"error": "not_found"})
        return httpx.Response(200, json=routes[request.url.path])

    cache = ResolutionCache(fastSettings.cache.path).load()
    aggregator = Aggregator(fastSettings, cache, client=mockClient(handler))
    report = await aggregator.run(packDir)

    assert report.ok
    assert [(m.displayName, m.versionLabel, m.canonicalUrl, m.side) for m in report.manifest] == [
        ("JEI", "jei-15.3", "https://www.curseforge.com/minecraft/mc-mods/jei", Side.BOTH),
        ("Sodium", "0.5.8", "https://modrinth.com/mod/sodium", Side.CLIENT),
    ]
    assert len(ResolutionCache(fastSettings.cache.path).load()) == 2
    assert {entry.platform for entry in cache.entries()} == {Platform.CURSEFORGE, Platform.MODRINTH}


@pytest.mark.asyncio
async def test_non_ascii_curseforge_id_only_fails_its_own_entry(fastSettings, writeDefinition, packDir, mockClient):
    writeDefinition("mods/odd.pw.toml", 'name = "Odd"\nfilename = "odd.jar"\n\n[update.curseforge]\nproject-id = "²"\n')
    writeDefinition(
        "mods/zz-extra.pw.toml",
        'name = "Extra"\nfilename = "extra-1.2.0.jar"\nside = "client"\n\n[download]\nurl = "https://example.org/extra-1.2.0.jar"\n',
    )

    resolver = StubResolver()
    aggregator, _ = _aggregator(fastSettings, resolver, mockClient)
    report = await aggregator.run(packDir)

    assert [entry.displayName for entry in report.manifest] == ["Extra"]
    assert [(failure.relPath, failure.kind) for failure in report.failures] == [("mods/odd.pw.toml", "MalformedDefinition")]
    assert resolver.calls == []


@pytest.mark.asyncio
async def test_unexpected_resolver_exception_is_recorded_per_entry(fastSettings, writeDefinition, packDir, mockClient):
    writeDefinition("mods/a.pw.toml", _modrinthDef("aaa"))
    writeDefinition("mods/b.pw.toml", _modrinthDef("bbb"))
    writeDefinition("mods/c.pw.toml", _modrinthDef("ccc"))

    def _brokenPayload(reference, message):
        return ValueError(f"unexpected payload for {reference.projectId}")

    aggregator, cache = _aggregator(fastSettings, StubResolver(failures={"bbb": _brokenPayload}), mockClient)
    report = await aggregator.run(packDir)

    assert [entry.displayName for entry in report.manifest] == ["Mod aaa", "Mod ccc"]
    assert len(report.failures) == 1
    assert report.failures[0].relPath == "mods/b.pw.toml"
    assert report.failures[0].kind == "ValueError"
    assert "bbb" in report.failures[0].message
    assert len(cache) == 2
