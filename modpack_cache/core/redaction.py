# modpack_cache/core/redaction.py
from __future__ import annotations

import re

__all__ = ["redactText", "addSecret"]



# Precompiled sensitive-data regex patterns
_SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Bearer or Authorization headers
    (re.compile(r"(?iu)(Bearer\s+)[A-Za-z0-9._\-]+"), r"\1***"),
    (re.compile(r"(?iu)(Authorization\s*[:=]\s*)[A-Za-z0-9._\-]+"), r"\1***"),

    # CurseForge key in headers, dumps and env-style assignments
    (re.compile(r"(?iu)(x-api-key['\"]?\s*[:=]\s*['\"]?)[^'\"\s,}]+"), r"\1***"),
    (re.compile(r"(?iu)(FORGE_API_KEY\s*=\s*)\S+"), r"\1***"),
    (re.compile(r'(?iu)("api[_\-]?key"\s*:\s*")[^"]+(")'), r"\1***\2"),

    # Query parameter forms like token=abcdef
    (re.compile(r"(?iu)(token=)[^&\s]+"), r"\1***"),
]

# Literal secrets registered at runtime (e.g. the configured API key)
_LITERAL_SECRETS: set[str] = set()



def addSecret(secret: str | None) -> None:
    """Registers a literal value that must never appear in log output."""
    if secret and len(secret) >= 4:
        _LITERAL_SECRETS.add(secret)



def redactText(text: str) -> str:
    """Return sanitized text with sensitive substrings replaced by ***."""
    if not text:
        return text
    out = text
    for secret in _LITERAL_SECRETS:
        out = out.replace(secret, "***")
    for pattern, repl in _SENSITIVE_PATTERNS:
        try:
            out = pattern.sub(repl, out)
        except re.error:
            continue # Never crash logging on regex errors
    return out
