# modpack_cache/pipeline/aggregator.py
from __future__ import annotations
import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from modpack_cache.cache.store import ResolutionCache
from modpack_cache.config.settings import Settings
from modpack_cache.core.errors import DuplicateDefinition, IOFailure, MalformedDefinition, ResolveError, Transient
from modpack_cache.core.logging import clearLogContext, setLogContext
from modpack_cache.core.time import nowMonotonicMs
from modpack_cache.definitions.discover import discoverDefinitions
from modpack_cache.definitions.parser import readDefinition
from modpack_cache.definitions.types import Definition, ModMetadata
from modpack_cache.http.client import createClient
from modpack_cache.resolver.context import ResolveContext
from modpack_cache.resolver.dispatch import ResolveFn, resolve

logger = logging.getLogger(__name__)

__all__ = ["EntryFailure", "RunReport", "Aggregator", "logFailureSummary"]



@dataclass(frozen=True, slots=True)
class EntryFailure:
    """A definition that did not make it into the manifest, and why."""
    relPath: str
    kind: str
    message: str



@dataclass
class RunReport:
    manifest: list[ModMetadata] = field(default_factory=list)     # Manifest order
    failures: list[EntryFailure] = field(default_factory=list)    # Input order
    cacheHits: int = 0
    resolved: int = 0
    inline: int = 0

    @property
    def ok(self) -> bool:
        return not self.failures



def logFailureSummary(report: RunReport) -> None:
    if not report.failures:
        return
    counts = Counter(failure.kind for failure in report.failures)
    logger.warning(
        "%d definition(s) failed: %s",
        len(report.failures),
        ", ".join(f"{kind}={counts[kind]}" for kind in sorted(counts)),
    )
    for failure in report.failures:
        logger.warning("  %s [%s] %s", failure.relPath, failure.kind, failure.message)



class Aggregator:
    """
    Drives one run: discover → parse → cache lookup → bounded concurrent
    resolution → reassembly in input order.

    Per-definition problems, including unexpected resolver exceptions, become
    EntryFailure records. Storage failures (IOFailure) cancel whatever is
    still in flight and propagate.
    """
    def __init__(
        self,
        settings: Settings,
        cache: ResolutionCache,
        *,
        resolveFn: ResolveFn = resolve,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self._resolveFn = resolveFn
        self._client = client

    async def run(self, inputDir: str | Path) -> RunReport:
        startMs = nowMonotonicMs()
        root = Path(inputDir)
        paths = discoverDefinitions(root, self.settings.definitions)

        report = RunReport()
        slots: list[ModMetadata | None] = [None] * len(paths)
        failures: dict[int, EntryFailure] = {}
        pending: list[tuple[int, Definition]] = []
        seenProjects: dict[tuple[str, str], str] = {}
        relPaths = [path.relative_to(root).as_posix() for path in paths]

        for index, path in enumerate(paths):
            try:
                definition = readDefinition(path, root=root)
            except MalformedDefinition as err:
                logger.warning("Skipping '%s': %s", err.path, err.reason)
                failures[index] = EntryFailure(err.path, err.kind, err.reason)
                continue

            reference = definition.reference
            firstPath = seenProjects.get(reference.projectKey)
            if firstPath is not None:
                dup = DuplicateDefinition(definition.relPath, f"same project as '{firstPath}'")
                logger.warning("Skipping '%s': %s", dup.path, dup.reason)
                failures[index] = EntryFailure(dup.path, dup.kind, dup.reason)
                continue
            seenProjects[reference.projectKey] = definition.relPath

            if definition.inline is not None:
                slots[index] = definition.inline
                report.inline += 1
                continue

            cached = self.cache.get(reference)
            if cached is not None:
                logger.debug("Cache hit for %s ('%s')", reference, definition.relPath)
                slots[index] = cached
                report.cacheHits += 1
                continue

            pending.append((index, definition))

        if pending:
            logger.info("Resolving %d definition(s) upstream (%d cached, %d inline)",
                len(pending), report.cacheHits, report.inline)
            report.resolved = await self._resolvePending(pending, slots, failures)

        self._dropDuplicateUrls(slots, relPaths, failures)

        report.manifest = [metadata for metadata in slots if metadata is not None]
        if self.settings.manifest.order == "name":
            report.manifest.sort(key=lambda m: (m.displayName.casefold(), m.side.value))
        report.failures = [failures[index] for index in sorted(failures)]

        logger.info(
            "Run finished in %d ms: %d entries (%d cached, %d resolved, %d inline), %d failed",
            nowMonotonicMs() - startMs,
            len(report.manifest), report.cacheHits, report.resolved, report.inline, len(report.failures),
        )
        logFailureSummary(report)
        return report

    # ----- Resolution -----

    async def _resolvePending(
        self,
        pending: list[tuple[int, Definition]],
        slots: list[ModMetadata | None],
        failures: dict[int, EntryFailure],
    ) -> int:
        ownsClient = self._client is None
        client = self._client if self._client is not None else createClient(self.settings.http)
        context = ResolveContext(
            client=client,
            http=self.settings.http,
            modrinth=self.settings.modrinth,
            curseforge=self.settings.curseforge,
        )
        semaphore = asyncio.Semaphore(self.settings.resolver.maxConcurrency)
        resolved = 0

        async def worker(index: int, definition: Definition) -> None:
            nonlocal resolved
            async with semaphore:
                setLogContext(definition=definition.relPath, platform=definition.reference.platform.value)
                try:
                    try:
                        metadata = await self._resolveOne(definition, context)
                    except ResolveError as err:
                        logger.warning("Could not resolve %s: %s", definition.reference, err.message)
                        failures[index] = EntryFailure(definition.relPath, err.kind, err.message)
                        return
                    except IOFailure:
                        raise
                    except Exception as err:
                        # Any other resolver error stays confined to its entry
                        logger.exception("Unexpected failure resolving %s", definition.reference)
                        failures[index] = EntryFailure(definition.relPath, type(err).__name__, str(err) or repr(err))
                        return
                    await self.cache.put(definition.reference, metadata)
                    slots[index] = metadata
                    resolved += 1
                finally:
                    clearLogContext()

        tasks = [asyncio.create_task(worker(index, definition)) for index, definition in pending]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        finally:
            if ownsClient:
                await client.aclose()
        return resolved

    async def _resolveOne(self, definition: Definition, context: ResolveContext) -> ModMetadata:
        budgetMs = self.settings.resolver.resolveTimeoutMs
        startMs = nowMonotonicMs()
        try:
            async with asyncio.timeout(budgetMs / 1000):
                metadata = await self._resolveFn(definition.reference, context)
        except TimeoutError as err:
            raise Transient(definition.reference, f"Resolution took longer than {budgetMs} ms") from err
        logger.info("Resolved %s as '%s' %s in %d ms",
            definition.reference, metadata.displayName, metadata.versionLabel, nowMonotonicMs() - startMs)
        return metadata

    # ----- Post-processing -----

    def _dropDuplicateUrls(
        self,
        slots: list[ModMetadata | None],
        relPaths: list[str],
        failures: dict[int, EntryFailure],
    ) -> None:
        """A project reachable through two identifiers (id vs. slug) ends up under one URL; keep the first."""
        seenUrls: dict[str, int] = {}
        for index, metadata in enumerate(slots):
            if metadata is None:
                continue
            key = metadata.canonicalUrl.rstrip("/").lower()
            if key in seenUrls:
                dup = DuplicateDefinition(relPaths[index], f"resolves to the same project as '{relPaths[seenUrls[key]]}'")
                logger.warning("Skipping '%s': %s", dup.path, dup.reason)
                failures[index] = EntryFailure(dup.path, dup.kind, dup.reason)
                slots[index] = None
                continue
            seenUrls[key] = index
