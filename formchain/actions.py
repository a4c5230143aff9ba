"""Helpers for writing the step actions a chain calls."""

from __future__ import annotations

import functools
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from .constants import PREVIOUS_KEY
from .contracts import Payload, StepResult

logger = logging.getLogger(__name__)

ActionBody = Callable[[Payload], Union[Payload, StepResult, Awaitable[Any], None]]


def read_previous(form: Mapping[str, Any]) -> Payload:
    """Return the accumulated payload sent with a chained step request.

    A missing or unreadable ``__previous`` field yields an empty payload.
    """
    raw = form.get(PREVIOUS_KEY)
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Ignoring unreadable {PREVIOUS_KEY} field: {e}")
        return {}
    return value if isinstance(value, dict) else {}


def step_response(
    step: str, ok: bool = True, message: str = "", data: Optional[Payload] = None
) -> Dict[str, Any]:
    """Build a response body in the shape every step must return."""
    return StepResult(step=step, ok=ok, message=message, data=data or {}).model_dump()


def chain_action(step: str, message: str = "") -> Callable[[ActionBody], Callable]:
    """Wrap a function of the previous payload into a form action handler.

    The wrapped function receives the decoded accumulated payload and returns
    either the data to merge forward or a complete :class:`StepResult`.
    """

    def decorator(fn: ActionBody) -> Callable[[Mapping[str, Any]], Awaitable[dict]]:
        @functools.wraps(fn)
        async def handler(form: Mapping[str, Any]) -> Dict[str, Any]:
            result = fn(read_previous(form))
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, StepResult):
                return result.model_dump()
            return step_response(step, message=message, data=result)

        return handler

    return decorator
