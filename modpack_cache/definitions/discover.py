# modpack_cache/definitions/discover.py
from __future__ import annotations
import logging
import tomllib
from collections.abc import Iterable
from pathlib import Path

from modpack_cache.config.settings import DefinitionsSettings
from modpack_cache.core.errors import InputIOFailure

logger = logging.getLogger(__name__)

__all__ = ["discoverDefinitions"]



def _sortKey(root: Path, path: Path) -> str:
    return path.relative_to(root).as_posix()



def _dedupe(paths: Iterable[Path]) -> list[Path]:
    out: list[Path] = []
    seen: set[str] = set()
    for path in paths:
        key = str(path.resolve(strict=False))
        if key not in seen:
            out.append(path)
            seen.add(key)
    return out



def _fromIndex(root: Path, indexPath: Path) -> list[Path]:
    """
    Lists metafile entries of a packwiz index.toml:

      [[files]]
      file = "mods/sodium.pw.toml"
      metafile = true

    Entries that would leave the pack root are skipped.
    """
    try:
        doc = tomllib.loads(indexPath.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as err:
        raise InputIOFailure(indexPath, f"Cannot read pack index: {err}") from err
    except tomllib.TOMLDecodeError as err:
        raise InputIOFailure(indexPath, f"Pack index is not valid TOML: {err}") from err

    files = doc.get("files", [])
    if not isinstance(files, list):
        raise InputIOFailure(indexPath, "Pack index 'files' must be an array of tables")

    rootResolved = root.resolve()
    out: list[Path] = []
    for entry in files:
        if not isinstance(entry, dict) or entry.get("metafile") is not True:
            continue
        name = entry.get("file")
        if not isinstance(name, str) or not name:
            continue
        candidate = root / name
        if not candidate.resolve(strict=False).is_relative_to(rootResolved):
            logger.warning("Skipping index entry '%s': points outside of the pack root", name)
            continue
        out.append(candidate)
    return out



def _fromScan(root: Path, suffix: str, indexName: str) -> list[Path]:
    try:
        found = [
            path for path in root.rglob(f"*{suffix}")
            if path.is_file() and path.name != indexName and not any(part.startswith(".") for part in path.relative_to(root).parts)
        ]
    except OSError as err:
        raise InputIOFailure(root, f"Cannot scan input directory: {err}") from err
    return found



def discoverDefinitions(inputDir: str | Path, settings: DefinitionsSettings) -> list[Path]:
    """
    Returns definition file paths under `inputDir` in deterministic order
    (relative POSIX path, lexicographic).

    With settings.useIndex and an index file present, only its metafile entries
    count. Otherwise every file ending in settings.suffix is a definition;
    hidden directories are ignored.

    Raises InputIOFailure when the directory (or its index) cannot be read.
    """
    root = Path(inputDir)
    if not root.exists():
        raise InputIOFailure(root, "Input directory does not exist")
    if not root.is_dir():
        raise InputIOFailure(root, "Input path is not a directory")

    indexPath = root / settings.indexFile
    if settings.useIndex and indexPath.is_file():
        paths = _fromIndex(root, indexPath)
        source = "index"
    else:
        paths = _fromScan(root, settings.suffix, settings.indexFile)
        source = "scan"

    ordered = sorted(_dedupe(paths), key=lambda path: _sortKey(root, path))
    logger.info("Discovered %d definition file(s) in '%s' (%s)", len(ordered), root, source)
    return ordered
