# modpack_cache/core/logging/context.py
from __future__ import annotations
import contextvars

# Per-task log context. asyncio tasks copy it on creation, so a value set inside
# one resolution task never leaks into its siblings.
_logContextVar: contextvars.ContextVar[dict[str, object] | None] = contextvars.ContextVar("modpack_cache.logctx", default=None)

def setLogContext(**kvs):
    """Set or update per-log context values (definition, platform, etc.)."""
    current = dict(_logContextVar.get() or {}) # use copy
    for key, value in kvs.items():
        if value is not None:
            current[key] = value
    _logContextVar.set(current)

def clearLogContext():
    """Clear context after a definition is fully handled."""
    _logContextVar.set(None)

def getLogContext():
    """Return current context dict or None."""
    return _logContextVar.get()
