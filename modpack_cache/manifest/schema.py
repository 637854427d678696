# modpack_cache/manifest/schema.py
from __future__ import annotations
from collections.abc import Callable
from typing import Any, cast

import fastjsonschema

__all__ = ["MANIFEST_SCHEMA", "validateManifest"]

ValidatorFn = Callable[[Any], Any]

# The front-end contract. `game_versions`/`loaders` only appear when compatibility output is enabled.
MANIFEST_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Modpack manifest",
    "type": "array",
    "items": {
        "type": "object",
        "additionalProperties": False,
        "required": ["name", "version", "url", "side"],
        "properties": {
            "name": {"type": "string", "minLength": 1},
            "version": {"type": "string", "minLength": 1},
            "author": {"type": "string"},
            "url": {"type": "string", "minLength": 1},
            "side": {"enum": ["client", "server", "both"]},
            "game_versions": {"type": "array", "items": {"type": "string"}},
            "loaders": {"type": "array", "items": {"type": "string"}},
        },
    },
}

# fastjsonschema.compile returns an untyped callable → cast it
_validator: ValidatorFn = cast(ValidatorFn, fastjsonschema.compile(MANIFEST_SCHEMA))



def validateManifest(document: Any) -> None:
    """Raises fastjsonschema.JsonSchemaValueException when `document` breaks the contract."""
    _validator(document)
