# modpack_cache/core/dictpath.py
from __future__ import annotations
from typing import Any
from collections.abc import Mapping, MutableMapping

__all__ = ["setByPath", "deleteByPath", "deepMerge"]



def _splitPath(path: str) -> list[str]:
    """
    Splits a dotted path ("http.retries") into segments.

    Raises ValueError for empty paths or empty segments ("a..b", ".a", "a.").
    """
    if not isinstance(path, str) or not path:
        raise ValueError("Path must be a non-empty string")
    parts = path.split(".")
    if any(part == "" for part in parts):
        raise ValueError(f"Path '{path}' contains empty segment(s)")
    return parts



def setByPath(obj: MutableMapping[str, Any], path: str, value: Any, *, createIfMissing: bool = False) -> None:
    """
    Sets the value at dotted `path`.

    Missing intermediate mappings are created only when createIfMissing is True,
    otherwise KeyError is raised. A non-mapping in the middle of the chain raises TypeError.
    """
    parts = _splitPath(path)
    current: Any = obj
    for part in parts[:-1]:
        if not isinstance(current, MutableMapping):
            raise TypeError(f"Cannot descend into '{part}' of non-mapping {type(current).__name__}")
        if part not in current:
            if not createIfMissing:
                raise KeyError(f"path segment '{part}' not found in mapping")
            current[part] = {}
        current = current[part]

    if not isinstance(current, MutableMapping):
        raise TypeError(f"Cannot write '{parts[-1]}' into non-mapping {type(current).__name__}")
    current[parts[-1]] = value



def deleteByPath(obj: MutableMapping[str, Any], path: str, *, pruneEmptyParents: bool = False) -> bool:
    """
    Deletes the value at dotted `path`. Returns True when something was removed.
    With pruneEmptyParents, parents left empty by the delete are removed as well.
    """
    try:
        parts = _splitPath(path)
    except ValueError:
        return False

    chain: list[MutableMapping[str, Any]] = []
    current: Any = obj
    for part in parts[:-1]:
        if not isinstance(current, MutableMapping) or part not in current:
            return False
        chain.append(current)
        current = current[part]

    if not isinstance(current, MutableMapping) or parts[-1] not in current:
        return False
    del current[parts[-1]]

    if pruneEmptyParents:
        child = current
        for parent, key in zip(reversed(chain), reversed(parts[:-1])):
            if child:
                break
            del parent[key]
            child = parent
    return True



def deepMerge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """
    Returns a new dict with `override` merged onto `base`.
    Nested mappings merge key by key; everything else in `override` replaces.
    """
    out: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = out.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            out[key] = deepMerge(current, value)
        else:
            out[key] = value
    return out
