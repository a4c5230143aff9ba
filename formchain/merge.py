"""Combination rules for folding step data into the accumulated payload."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Union


class MergePolicy(str, Enum):
    """How a step's data fragment is combined with the running payload."""

    DEEP = "deep"
    SHALLOW = "shallow"


def _is_plain_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def deep_merge(
    target: Mapping[str, Any], source: Mapping[str, Any]
) -> Dict[str, Any]:
    """Recursively merge ``source`` into a copy of ``target``.

    Nested mappings are merged key by key. Sequences and scalars from
    ``source`` replace whatever ``target`` held. ``target`` is never mutated.
    """
    merged = dict(target)
    for key, new_value in source.items():
        old_value = merged.get(key)
        if _is_plain_mapping(old_value) and _is_plain_mapping(new_value):
            merged[key] = deep_merge(old_value, new_value)
        else:
            merged[key] = new_value
    return merged


def shallow_merge(
    target: Mapping[str, Any], source: Mapping[str, Any]
) -> Dict[str, Any]:
    """One-level overwrite: ``source`` wins on conflicting keys."""
    return {**target, **source}


def merge(
    target: Mapping[str, Any],
    source: Mapping[str, Any],
    policy: Union[MergePolicy, str] = MergePolicy.DEEP,
) -> Dict[str, Any]:
    """Return the next accumulated payload under ``policy``."""
    policy = MergePolicy(policy)
    if policy is MergePolicy.DEEP:
        return deep_merge(target, source)
    return shallow_merge(target, source)
