# modpack_cache/definitions/parser.py
from __future__ import annotations
import logging
import re
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from modpack_cache.core.errors import MalformedDefinition
from .types import Definition, ModMetadata, ModReference, Platform, Side

logger = logging.getLogger(__name__)

__all__ = ["parseDefinition", "readDefinition", "extractReferenceFromUrl"]

# ------------------------------------------------------------------ #
# Packwiz metafile shape (*.pw.toml)
# ------------------------------------------------------------------ #
# name = "Sodium"
# filename = "sodium-fabric-0.5.8+mc1.20.4.jar"
# side = "client"
#
# [download]
# url = "https://cdn.modrinth.com/data/AANobbMI/versions/4GyXKCLd/sodium.jar"
#
# [update.modrinth]           or     [update.curseforge]
# mod-id = "AANobbMI"                project-id = 394468
# version = "4GyXKCLd"               file-id = 5101366
#

_MODRINTH_CDN_RE = re.compile(
    r"^https?://cdn\.modrinth\.com/data/(?P<project>[A-Za-z0-9]+)/versions/(?P<version>[^/]+)/",
    re.IGNORECASE,
)
_MODRINTH_SITE_RE = re.compile(
    r"^https?://(?:www\.)?modrinth\.com/"
    r"(?:mod|plugin|datapack|resourcepack|shader|modpack|project)/(?P<project>[A-Za-z0-9_.\-]+)"
    r"(?:/version/(?P<version>[^/?#]+))?/?(?:[?#].*)?$",
    re.IGNORECASE,
)
_CURSEFORGE_SITE_RE = re.compile(
    r"^https?://(?:www\.|legacy\.)?curseforge\.com/minecraft/[a-z\-]+/(?P<project>[A-Za-z0-9_\-]+)"
    r"(?:/(?:files|download)/(?P<version>\d+))?/?(?:[?#].*)?$",
    re.IGNORECASE,
)
_SHORTHAND_RE = re.compile(
    r"^(?P<platform>modrinth|mr|curseforge|cf):(?P<project>[^@\s]+)(?:@(?P<version>\S+))?$",
    re.IGNORECASE,
)
_FILENAME_VERSION_RE = re.compile(r"(?<![0-9A-Za-z])v?(\d+(?:\.\d+)+)")
_NUMERIC_ID_RE = re.compile(r"\d+", re.ASCII)

_SHORTHAND_PLATFORMS = {
    "modrinth": Platform.MODRINTH,
    "mr": Platform.MODRINTH,
    "curseforge": Platform.CURSEFORGE,
    "cf": Platform.CURSEFORGE,
}



def extractReferenceFromUrl(value: str) -> ModReference | None:
    """
    Pulls (platform, project, version) out of an identifier-bearing string.

    Recognized:
      • https://cdn.modrinth.com/data/<project>/versions/<version>/<file>
      • https://modrinth.com/<type>/<slug>[/version/<version>]
      • https://www.curseforge.com/minecraft/<class>/<slug>[/files/<fileId>]
      • modrinth:<id>[@<version>], curseforge:<id>[@<fileId>] (also mr:/cf:)

    Returns None when nothing matches.
    """
    text = (value or "").strip()
    if not text:
        return None

    match = _MODRINTH_CDN_RE.match(text) or _MODRINTH_SITE_RE.match(text)
    if match:
        return ModReference(Platform.MODRINTH, match["project"], match["version"] or None)

    match = _CURSEFORGE_SITE_RE.match(text)
    if match:
        return ModReference(Platform.CURSEFORGE, match["project"], match["version"] or None)

    match = _SHORTHAND_RE.match(text)
    if match:
        platform = _SHORTHAND_PLATFORMS[match["platform"].lower()]
        return ModReference(platform, match["project"], match["version"] or None)

    return None



def _str(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None



def _fromUpdateSection(path: Path, update: Any) -> ModReference | None:
    if update is None:
        return None
    if not isinstance(update, Mapping):
        raise MalformedDefinition(path, "[update] must be a table")

    modrinth = update.get("modrinth")
    curseforge = update.get("curseforge")
    if modrinth is not None and curseforge is not None:
        raise MalformedDefinition(path, "ambiguous [update] section: both modrinth and curseforge are set")

    if modrinth is not None:
        if not isinstance(modrinth, Mapping):
            raise MalformedDefinition(path, "[update.modrinth] must be a table")
        projectId = _str(modrinth.get("mod-id"))
        if projectId is None:
            raise MalformedDefinition(path, "[update.modrinth] has no usable 'mod-id'")
        return ModReference(Platform.MODRINTH, projectId, _str(modrinth.get("version")))

    if curseforge is not None:
        if not isinstance(curseforge, Mapping):
            raise MalformedDefinition(path, "[update.curseforge] must be a table")
        projectId = _str(curseforge.get("project-id"))
        if projectId is None or not _NUMERIC_ID_RE.fullmatch(projectId):
            raise MalformedDefinition(path, "[update.curseforge] has no usable numeric 'project-id'")
        return ModReference(Platform.CURSEFORGE, projectId, _str(curseforge.get("file-id")))

    return None



def _parseSide(path: Path, raw: Any) -> Side:
    if raw is None:
        return Side.BOTH
    try:
        return Side(str(raw).strip().lower())
    except ValueError:
        raise MalformedDefinition(path, f"unknown side '{raw}' (expected client, server or both)") from None



def _versionFromFilename(filename: str | None) -> str | None:
    if not filename:
        return None
    stem = re.sub(r"\.(jar|zip)$", "", filename, flags=re.IGNORECASE)
    match = _FILENAME_VERSION_RE.search(stem)
    return match.group(1) if match else None



def parseDefinition(path: Path, text: str, *, root: Path | None = None) -> Definition:
    """
    Parses one definition file's contents into a Definition.

    Lookup order:
      1) [update.modrinth] / [update.curseforge] identifier fields
      2) pattern extraction on download.url, url, source
      3) hosted-elsewhere mod: name + download.url become inline metadata

    Raises MalformedDefinition when none of these yields an identifier.
    Pure: the same (path, text, root) always yields an equal Definition.
    """
    path = Path(path)
    relPath = path.relative_to(root).as_posix() if root is not None else path.as_posix()

    try:
        doc = tomllib.loads(text)
    except tomllib.TOMLDecodeError as err:
        raise MalformedDefinition(relPath, f"invalid TOML: {err}") from err

    reference = _fromUpdateSection(Path(relPath), doc.get("update"))
    if reference is not None:
        return Definition(path=path, relPath=relPath, reference=reference)

    download = doc.get("download")
    downloadUrl = _str(download.get("url")) if isinstance(download, Mapping) else None

    for candidate in (downloadUrl, _str(doc.get("url")), _str(doc.get("source"))):
        if candidate is None:
            continue
        reference = extractReferenceFromUrl(candidate)
        if reference is not None:
            logger.debug("Extracted %s from '%s'", reference, candidate)
            return Definition(path=path, relPath=relPath, reference=reference)

    name = _str(doc.get("name"))
    if name is not None and downloadUrl is not None:
        versionLabel = _str(doc.get("version")) or _versionFromFilename(_str(doc.get("filename"))) or "unknown"
        hashValue = _str(download.get("hash")) if isinstance(download, Mapping) else None
        side = _parseSide(Path(relPath), doc.get("side"))
        inline = ModMetadata(
            displayName=name,
            versionLabel=versionLabel,
            author=_str(doc.get("author")),
            canonicalUrl=downloadUrl,
            side=side,
        )
        reference = ModReference(Platform.URL, downloadUrl, hashValue)
        return Definition(path=path, relPath=relPath, reference=reference, inline=inline)

    raise MalformedDefinition(relPath, "no project identifier found")



def readDefinition(path: Path, *, root: Path | None = None) -> Definition:
    """Reads and parses a definition file. Unreadable files count as malformed."""
    relPath = Path(path).relative_to(root).as_posix() if root is not None else Path(path).as_posix()
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise MalformedDefinition(relPath, f"cannot read definition: {err}") from err
    return parseDefinition(Path(path), text, root=root)
