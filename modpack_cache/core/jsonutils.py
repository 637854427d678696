# modpack_cache/core/jsonutils.py
from __future__ import annotations

import json
from collections.abc import Mapping, Iterable
from dataclasses import is_dataclass, asdict
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel

__all__ = ["safeJsonDumps", "prettyJsonDumps", "serializeError", "tryJSONify"]



# ------------------------------------------------
#                JSON serialization
# ------------------------------------------------

def safeJsonDumps(obj: object) -> str:
    """
    Serializes an object or pydantic model to a compact JSON string.
    Uses deterministic separators (",", ":") and disallows NaN/infinity.
    UTF-8 characters are kept as-is.
    If direct JSON encoding fails, falls back to tryJSONify and retries.
    """
    payload: Any
    if isinstance(obj, BaseModel):
        payload = obj.model_dump(mode="json")
    else:
        payload = obj

    try:
        return json.dumps(payload, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError):
        safePayload = tryJSONify(payload)
        return json.dumps(safePayload, ensure_ascii=False, allow_nan=False, separators=(",", ":"))



def prettyJsonDumps(obj: Any, *, indent: int = 2) -> str:
    """
    Serializes JSON-ready data for files meant to be diffed: fixed indentation,
    insertion-ordered keys, UTF-8 kept as-is and a trailing newline.
    Unlike safeJsonDumps there is no fallback; unserializable input raises.
    """
    return json.dumps(obj, ensure_ascii=False, allow_nan=False, indent=indent) + "\n"



# ------------------------------------------------
#              Error / Exception helpers
# ------------------------------------------------

def serializeError(err: Any) -> dict[str, Any]:
    """
    Converts Exception or arbitrary object into a JSON-serializable dict.

    Examples:
        ValueError("bad") -> {"type": "ValueError", "message": "bad"}
        "error text"      -> {"message": "error text"}
        None              -> {}
    """
    if err is None:
        return {}
    if isinstance(err, str):
        return {"message": err}
    if isinstance(err, BaseException):
        data: dict[str, Any] = {
            "type": err.__class__.__name__,
            "message": str(err),
        }
        kind = getattr(err, "kind", None)
        if isinstance(kind, str):
            data["kind"] = kind
        return data
    return {"type": type(err).__name__, "repr": repr(err)}



# ------------------------------------------------
#              Generic JSON safety
# ------------------------------------------------

def tryJSONify(obj: Any, *, _seen: set[int] | None = None, _depth: int = 0, _maxDepth: int = 10) -> Any:
    """
    Attempts to make any object JSON-serializable.

    Rules:
      • Basic scalars (None, bool, int, float, str) are preserved.
      • Exceptions → serializeError().
      • date/datetime → ISO8601 string, Path → string, Enum → its value.
      • pydantic models and dataclasses → dict.
      • sets/tuples/iterables → list, Mappings → dict with str keys.
      • fallback → repr(obj)
    """
    if _seen is None:
        _seen = set()

    oid = id(obj)
    if oid in _seen:
        return f"<circular_ref {type(obj).__name__}>"
    if _depth > _maxDepth:
        return f"<max_depth_exceeded {type(obj).__name__}>"

    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj

    _seen.add(oid)
    nextKw = {"_seen": _seen, "_depth": _depth + 1, "_maxDepth": _maxDepth}

    if isinstance(obj, BaseException):
        return serializeError(obj)
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return tryJSONify(obj.value, **nextKw)
    if isinstance(obj, BaseModel):
        return tryJSONify(obj.model_dump(mode="json"), **nextKw)
    if is_dataclass(obj) and not isinstance(obj, type):
        return tryJSONify(asdict(obj), **nextKw)
    if isinstance(obj, Path):
        return obj.as_posix()
    if isinstance(obj, Mapping):
        return {str(key): tryJSONify(value, **nextKw) for key, value in obj.items()}
    if isinstance(obj, Iterable) and not isinstance(obj, (bytes, bytearray)):
        return [tryJSONify(value, **nextKw) for value in obj]

    # Last-ditch representation (avoid raising during logging)
    return repr(obj)
