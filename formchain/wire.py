"""Decoder for the flattened reference encoding.

Some servers wrap action results in a richer envelope than plain JSON: the
whole value is flattened into a JSON array whose first element is the root,
and containers hold integer indexes into that array instead of nested
values. Negative indexes stand for values JSON cannot express, and a few
types are tagged as ``["Date", "..."]``, ``["Set", ...]`` and so on.
"""

from __future__ import annotations

import json
import math
from datetime import datetime
from typing import Any, Callable, Dict, List

UNDEFINED = -1
HOLE = -2
NAN = -3
POSITIVE_INFINITY = -4
NEGATIVE_INFINITY = -5
NEGATIVE_ZERO = -6

_SPECIALS: Dict[int, Any] = {
    UNDEFINED: None,
    HOLE: None,
    NAN: math.nan,
    POSITIVE_INFINITY: math.inf,
    NEGATIVE_INFINITY: -math.inf,
    NEGATIVE_ZERO: -0.0,
}


class WireDecodeError(ValueError):
    """Raised when a value is not a valid flattened encoding."""


def looks_flattened(value: Any) -> bool:
    """Cheap structural check used before attempting a full decode."""
    if isinstance(value, list):
        return bool(value)
    if isinstance(value, str):
        stripped = value.lstrip()
        return stripped.startswith("[")
    return False


def parse(text: str) -> Any:
    """Decode a flattened encoding from its JSON text."""
    try:
        values = json.loads(text)
    except ValueError as e:
        raise WireDecodeError(f"Not valid JSON: {e}") from e
    return unflatten(values)


def unflatten(values: Any) -> Any:
    """Rebuild the original structure from an already-parsed flat array."""
    if isinstance(values, int) and not isinstance(values, bool):
        if values in _SPECIALS:
            return _SPECIALS[values]
        raise WireDecodeError(f"Invalid standalone index {values}")
    if not isinstance(values, list) or not values:
        raise WireDecodeError("Expected a non-empty array")
    return _Hydrator(values).hydrate(0)


class _Hydrator:
    def __init__(self, values: List[Any]) -> None:
        self._values = values
        self._hydrated: Dict[int, Any] = {}
        self._tagged: Dict[str, Callable[[int, List[Any]], Any]] = {
            "Date": self._date,
            "Set": self._set,
            "Map": self._map,
            "BigInt": self._bigint,
            "RegExp": self._regexp,
            "Object": self._boxed,
            "null": self._null_object,
        }

    def hydrate(self, index: Any) -> Any:
        if not isinstance(index, int) or isinstance(index, bool):
            raise WireDecodeError(f"Invalid reference {index!r}")
        if index in _SPECIALS:
            return _SPECIALS[index]
        if index in self._hydrated:
            return self._hydrated[index]
        if not 0 <= index < len(self._values):
            raise WireDecodeError(f"Reference {index} out of range")

        value = self._values[index]
        if isinstance(value, dict):
            obj: Dict[str, Any] = {}
            self._hydrated[index] = obj
            for key, ref in value.items():
                obj[key] = self.hydrate(ref)
            return obj
        if isinstance(value, list):
            if value and isinstance(value[0], str):
                handler = self._tagged.get(value[0])
                if handler is None:
                    raise WireDecodeError(f"Unsupported tagged type {value[0]!r}")
                return handler(index, value)
            items: List[Any] = []
            self._hydrated[index] = items
            for ref in value:
                items.append(self.hydrate(ref))
            return items

        self._hydrated[index] = value
        return value

    def _date(self, index: int, value: List[Any]) -> datetime:
        try:
            result = datetime.fromisoformat(str(value[1]).replace("Z", "+00:00"))
        except (IndexError, ValueError) as e:
            raise WireDecodeError(f"Invalid Date entry: {value!r}") from e
        self._hydrated[index] = result
        return result

    def _set(self, index: int, value: List[Any]) -> List[Any]:
        items: List[Any] = []
        self._hydrated[index] = items
        for ref in value[1:]:
            items.append(self.hydrate(ref))
        return items

    def _pairs(self, value: List[Any], target: Dict[Any, Any]) -> None:
        refs = value[1:]
        if len(refs) % 2:
            raise WireDecodeError(f"Odd number of entries in {value[0]}")
        for key_ref, value_ref in zip(refs[::2], refs[1::2]):
            key = self.hydrate(key_ref)
            try:
                target[key] = self.hydrate(value_ref)
            except TypeError as e:
                raise WireDecodeError(f"Unhashable {value[0]} key {key!r}") from e

    def _map(self, index: int, value: List[Any]) -> Dict[Any, Any]:
        result: Dict[Any, Any] = {}
        self._hydrated[index] = result
        self._pairs(value, result)
        return result

    def _null_object(self, index: int, value: List[Any]) -> Dict[Any, Any]:
        return self._map(index, value)

    def _bigint(self, index: int, value: List[Any]) -> int:
        try:
            result = int(value[1])
        except (IndexError, TypeError, ValueError) as e:
            raise WireDecodeError(f"Invalid BigInt entry: {value!r}") from e
        self._hydrated[index] = result
        return result

    def _regexp(self, index: int, value: List[Any]) -> str:
        source = value[1] if len(value) > 1 else ""
        flags = value[2] if len(value) > 2 else ""
        result = f"/{source}/{flags}"
        self._hydrated[index] = result
        return result

    def _boxed(self, index: int, value: List[Any]) -> Any:
        result = value[1] if len(value) > 1 else None
        self._hydrated[index] = result
        return result
