# modpack_cache/cli.py
from __future__ import annotations
import asyncio
import logging
from pathlib import Path

import click

from modpack_cache.cache.store import ResolutionCache
from modpack_cache.config.settings import Settings
from modpack_cache.config.store import loadSettings
from modpack_cache.core.errors import ConfigError, ModpackCacheError
from modpack_cache.core.logging import configureLogging
from modpack_cache.core.redaction import addSecret
from modpack_cache.manifest.emitter import emitManifest
from modpack_cache.pipeline.aggregator import Aggregator, RunReport

logger = logging.getLogger(__name__)

__all__ = ["EXIT_OK", "EXIT_PARTIAL", "EXIT_FATAL", "cli", "main", "runOnce"]

EXIT_OK = 0         # Every definition made it into the manifest
EXIT_PARTIAL = 1    # Manifest written, some definitions failed
EXIT_FATAL = 2      # Nothing written (storage or configuration failure)

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]



async def runOnce(settings: Settings, inputDir: Path, outputFile: Path) -> RunReport:
    """Load cache → aggregate → write manifest. IOFailure propagates."""
    cache = ResolutionCache(settings.cache.path).load()
    report = await Aggregator(settings, cache).run(inputDir)
    emitManifest(
        report.manifest,
        outputFile,
        includeCompatibility=settings.manifest.includeCompatibility,
        indent=settings.manifest.indent,
    )
    return report



@click.command(name="cache_modpack")
@click.argument("input_dir", type=click.Path(file_okay=False, path_type=Path))
@click.argument("output_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--config", "configFile", type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON5 configuration file layered over the defaults.")
@click.option("--cache", "cachePath", type=click.Path(dir_okay=False, path_type=Path),
    help="Resolution cache file (default: .modpack-cache/resolutions.json5).")
@click.option("--concurrency", type=click.IntRange(min=1), help="Maximum resolutions in flight.")
@click.option("--log-level", "logLevel", type=click.Choice(_LOG_LEVELS, case_sensitive=False), help="Console log level.")
@click.option("--log-json", "logJson", type=click.Path(dir_okay=False, path_type=Path),
    help="Also write JSON-lines logs to this file.")
@click.pass_context
def cli(
    ctx: click.Context,
    input_dir: Path,
    output_file: Path,
    configFile: Path | None,
    cachePath: Path | None,
    concurrency: int | None,
    logLevel: str | None,
    logJson: Path | None,
) -> None:
    """Resolve the mod definitions in INPUT_DIR and write the JSON manifest to OUTPUT_FILE.

    Set FORGE_API_KEY to resolve CurseForge projects.
    """
    overrides = {
        "cache.path": str(cachePath) if cachePath is not None else None,
        "resolver.maxConcurrency": concurrency,
        "logging.level": logLevel.upper() if logLevel else None,
        "logging.jsonFile": str(logJson) if logJson is not None else None,
    }
    try:
        settings = loadSettings(configFile=configFile, overrides=overrides)
    except ConfigError as err:
        click.echo(f"cache_modpack: {err}", err=True)
        ctx.exit(EXIT_FATAL)

    configureLogging(settings.logging)
    addSecret(settings.curseforge.apiKey)

    try:
        report = asyncio.run(runOnce(settings, input_dir, output_file))
    except ModpackCacheError as err:
        logger.error("%s: %s", err.kind, err)
        ctx.exit(EXIT_FATAL)
    except Exception:
        logger.exception("Unexpected failure, no manifest written")
        ctx.exit(EXIT_FATAL)

    ctx.exit(EXIT_OK if report.ok else EXIT_PARTIAL)



def main() -> None:
    cli(prog_name="cache_modpack")
