import os
from pathlib import Path

import json5
import pytest

from modpack_cache.cache import store as cache_store
from modpack_cache.cache.store import CACHE_SCHEMA_VERSION, ResolutionCache
from modpack_cache.core.errors import CacheIOFailure
from modpack_cache.definitions.types import ModMetadata, ModReference, Platform, Side

SODIUM = ModReference(Platform.MODRINTH, "AANobbMI", "4GyXKCLd")
JEI = ModReference(Platform.CURSEFORGE, "238222")


def _meta(name: str, **extra) -> ModMetadata:
    return ModMetadata(
        displayName=name,
        versionLabel=extra.pop("versionLabel", "1.0.0"),
        canonicalUrl=f"https://example.org/{name.lower()}",
        **extra,
    )


def test_missing_file_loads_empty(tmp_path: Path):
    cache = ResolutionCache(tmp_path / "nope.json5").load()
    assert len(cache) == 0
    assert cache.get(SODIUM) is None


@pytest.mark.asyncio
async def test_put_persists_across_instances(tmp_path: Path):
    path = tmp_path / "deep" / "resolutions.json5"
    cache = ResolutionCache(path).load()

    await cache.put(SODIUM, _meta("Sodium", side=Side.CLIENT, loaders=["fabric"]))
    await cache.put(JEI, _meta("JEI", author="mezz"))

    reloaded = ResolutionCache(path).load()
    assert len(reloaded) == 2
    assert SODIUM in reloaded
    assert reloaded.get(SODIUM) == _meta("Sodium", side=Side.CLIENT, loaders=["fabric"])
    assert reloaded.get(JEI).author == "mezz"
    assert [entry.reference for entry in reloaded.entries()] == [JEI, SODIUM]

    doc = json5.loads(path.read_text(encoding="utf-8"))
    assert doc["schemaVersion"] == CACHE_SCHEMA_VERSION
    assert sorted(doc["entries"]) == ["curseforge:238222:", "modrinth:AANobbMI:4GyXKCLd"]
    assert not path.with_suffix(".json5.tmp").exists()


@pytest.mark.asyncio
async def test_new_version_is_a_new_key(tmp_path: Path):
    cache = ResolutionCache(tmp_path / "c.json5").load()
    await cache.put(SODIUM, _meta("Sodium"))

    bumped = ModReference(Platform.MODRINTH, "AANobbMI", "newVersion")
    assert cache.get(bumped) is None
    assert cache.get(ModReference(Platform.MODRINTH, "AANobbMI")) is None


@pytest.mark.asyncio
async def test_put_overwrites_same_key(tmp_path: Path):
    cache = ResolutionCache(tmp_path / "c.json5").load()
    await cache.put(SODIUM, _meta("Sodium", versionLabel="1"))
    entry = await cache.put(SODIUM, _meta("Sodium", versionLabel="2"))

    assert len(cache) == 1
    assert entry.metadata.versionLabel == "2"
    assert ResolutionCache(cache.path).load().get(SODIUM).versionLabel == "2"


@pytest.mark.parametrize(
    "content",
    [
        "{ not json5",
        "[]",
        '{"schemaVersion": 99, "entries": {}}',
        '{"schemaVersion": 1, "entries": []}',
    ],
)
def test_corrupt_or_foreign_documents_start_empty(tmp_path: Path, content: str):
    path = tmp_path / "c.json5"
    path.write_text(content, encoding="utf-8")
    assert len(ResolutionCache(path).load()) == 0


def test_invalid_entries_are_dropped(tmp_path: Path):
    path = tmp_path / "c.json5"
    good = {
        "platform": "modrinth", "projectId": "AANobbMI", "versionId": "4GyXKCLd",
        "metadata": _meta("Sodium").model_dump(mode="json"), "fetchedAt": 1,
    }
    bad = {"platform": "modrinth", "projectId": "x", "metadata": {"displayName": "no url"}, "fetchedAt": 1}
    path.write_text(json5.dumps({"schemaVersion": 1, "entries": {"a": good, "b": bad}}), encoding="utf-8")

    cache = ResolutionCache(path).load()

    assert len(cache) == 1
    assert cache.get(SODIUM).displayName == "Sodium"


def test_cache_path_that_is_a_directory_is_fatal(tmp_path: Path):
    with pytest.raises(CacheIOFailure):
        ResolutionCache(tmp_path).load()


@pytest.mark.asyncio
async def test_failed_flush_keeps_previous_file(tmp_path: Path, monkeypatch):
    path = tmp_path / "c.json5"
    cache = ResolutionCache(path).load()
    await cache.put(SODIUM, _meta("Sodium"))
    before = path.read_bytes()

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(cache_store.os, "replace", broken_replace)

    with pytest.raises(CacheIOFailure):
        await cache.put(JEI, _meta("JEI"))

    assert path.read_bytes() == before
    assert not path.with_suffix(".json5.tmp").exists()
    assert os.listdir(tmp_path) == ["c.json5"]
