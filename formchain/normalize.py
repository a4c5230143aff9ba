"""Coerce arbitrary step bodies into :class:`StepResult`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Tuple, Union

from . import wire
from .contracts import StepResult
from .errors import InvalidStepResponse
from .result import Err, Ok, Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodeStrategy:
    """One named way of unwrapping an encoded response envelope."""

    name: str
    applies: Callable[[Mapping[str, Any]], bool]
    decode: Callable[[Mapping[str, Any]], Any]

    def attempt(self, raw: Mapping[str, Any]) -> Result[Mapping[str, Any], str]:
        try:
            decoded = self.decode(raw)
        except wire.WireDecodeError as e:
            return Err(str(e))
        if not isinstance(decoded, Mapping):
            return Err(f"decoded value is {type(decoded).__name__}, not an object")
        return Ok(decoded)


def _has_flattened_data(raw: Mapping[str, Any]) -> bool:
    data = raw.get("data")
    return isinstance(data, list) and wire.looks_flattened(data)


def _has_encoded_data(raw: Mapping[str, Any]) -> bool:
    data = raw.get("data")
    return isinstance(data, str) and wire.looks_flattened(data)


DECODE_PIPELINE: Tuple[DecodeStrategy, ...] = (
    DecodeStrategy(
        name="flattened-data",
        applies=_has_flattened_data,
        decode=lambda raw: wire.unflatten(raw["data"]),
    ),
    DecodeStrategy(
        name="encoded-data-string",
        applies=_has_encoded_data,
        decode=lambda raw: wire.parse(raw["data"]),
    ),
)


def is_action_envelope(raw: Mapping[str, Any]) -> bool:
    """True for an action-result wrapper rather than a step result itself."""
    return "type" in raw or not isinstance(raw.get("ok"), bool)


def decode_envelope(raw: Mapping[str, Any], step: str) -> Mapping[str, Any]:
    """Unwrap ``raw`` with the first strategy that succeeds.

    An action-result envelope is replaced by its decoded contents. A body
    that already carries a boolean ``ok`` keeps its own ``step``, ``ok`` and
    ``message``; only its ``data`` is decoded. Strategies that fail are
    logged and skipped; when none succeeds the original value is returned
    untouched.
    """
    for strategy in DECODE_PIPELINE:
        if not strategy.applies(raw):
            continue
        outcome = strategy.attempt(raw)
        if isinstance(outcome, Ok):
            logger.debug(f'Decoded step "{step}" response via {strategy.name}')
            if is_action_envelope(raw):
                return outcome.value
            return {**raw, "data": outcome.value}
        logger.warning(
            f"Could not decode {strategy.name} payload "
            f'in step "{step}": {outcome.error}'
        )
    return raw


def normalize(raw: Any, fallback_step: str) -> StepResult:
    """Validate ``raw`` and extract the canonical step result.

    Raises:
        InvalidStepResponse: ``raw`` is missing, a sequence or not an object.
    """
    if raw is None or not isinstance(raw, Mapping):
        kind = "nothing" if raw is None else type(raw).__name__
        raise InvalidStepResponse(
            f'Step "{fallback_step}" returned invalid data ({kind}, not an object).',
            step=fallback_step,
            detail=raw,
        )

    decoded = decode_envelope(raw, fallback_step)

    step = decoded.get("step")
    ok = decoded.get("ok")
    message = decoded.get("message")
    data = decoded.get("data")

    return StepResult(
        step=step if isinstance(step, str) and step else fallback_step,
        ok=ok if isinstance(ok, bool) else True,
        message=message if isinstance(message, str) else "",
        data=(
            {str(k): v for k, v in data.items()} if isinstance(data, Mapping) else {}
        ),
    )


def normalize_result(
    raw: Any, fallback_step: str
) -> Union[Ok[StepResult], Err[InvalidStepResponse]]:
    """Like :func:`normalize` but returns the failure instead of raising."""
    try:
        return Ok(normalize(raw, fallback_step))
    except InvalidStepResponse as e:
        return Err(e)
