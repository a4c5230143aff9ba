"""Best-effort encoding of the accumulated payload for the next step."""

from __future__ import annotations

import io
import json
import logging
import math
import os
from typing import Any, Mapping, Optional

from pydantic_core import to_jsonable_python

logger = logging.getLogger(__name__)


def _file_name(value: Any) -> Optional[str]:
    name = getattr(value, "filename", None) or getattr(value, "name", None)
    if isinstance(name, str) and name:
        return os.path.basename(name)
    return None


def _is_file_like(value: Any) -> bool:
    if isinstance(value, io.IOBase):
        return True
    return callable(getattr(value, "read", None)) and hasattr(value, "filename")


def placeholder_for(value: Any) -> Optional[str]:
    """Return the inert marker used in place of ``value``, if it needs one."""
    if _is_file_like(value):
        name = _file_name(value)
        return f"[File:{name}]" if name else "[File]"
    if isinstance(value, bytes):
        return f"[Bytes({len(value)})]"
    if isinstance(value, bytearray):
        return f"[ByteArray({len(value)})]"
    if isinstance(value, memoryview):
        return f"[MemoryView({value.nbytes})]"
    return None


def _default(value: Any) -> Any:
    marker = placeholder_for(value)
    if marker is not None:
        if marker.startswith("[File"):
            logger.warning(
                f"File {marker[6:-1] or '<unnamed>'!r} skipped "
                "(files are only supported in the first step)."
            )
        else:
            logger.warning(f"Binary value {marker} skipped.")
        return marker
    return _finite(to_jsonable_python(value))


def _finite(value: Any, seen: Optional[set] = None) -> Any:
    """Copy containers, replacing NaN and infinities with ``None``."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if not isinstance(value, (Mapping, list, tuple)):
        return value

    seen = set() if seen is None else seen
    if id(value) in seen:
        raise ValueError("Circular reference detected")
    seen.add(id(value))
    try:
        if isinstance(value, Mapping):
            return {key: _finite(item, seen) for key, item in value.items()}
        return [_finite(item, seen) for item in value]
    finally:
        seen.discard(id(value))


def serialize(payload: Mapping[str, Any]) -> str:
    """Encode ``payload`` as a JSON string.

    Binary values and file handles become short placeholder strings and
    non-finite numbers become ``null``. If the payload cannot be encoded at
    all, ``"{}"`` is returned instead of raising.
    """
    try:
        return json.dumps(_finite(payload), default=_default, allow_nan=False)
    except Exception as e:
        logger.error(f"Failed to serialize chain payload: {e}")
        return "{}"
