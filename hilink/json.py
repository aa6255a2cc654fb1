"""JSON helpers for cli output and stored device configs.

orjson is used when the ``speedups`` extra is installed.
"""

from __future__ import annotations

from typing import Any

try:
    import orjson
except ImportError:
    orjson = None  # type: ignore[assignment]
    import json

if orjson is not None:
    loads = orjson.loads

    from mashumaro.mixins.orjson import DataClassORJSONMixin as DataClassJSONMixin
else:
    loads = json.loads

    from mashumaro.mixins.json import (  # type: ignore[assignment]
        DataClassJSONMixin,
    )


def dumps(obj: Any, *, indent: bool = False) -> str:
    """Dump obj to a JSON string, compact unless indent is set."""
    if orjson is not None:
        option = orjson.OPT_INDENT_2 if indent else 0
        return orjson.dumps(obj, option=option).decode()
    # Match the orjson output format
    return json.dumps(obj, separators=(",", ":"), indent=2 if indent else None)
