"""Chain execution engine for formchain."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from pydantic import ValidationError

from .config import FormChainConfig, load_config
from .constants import (
    COMPLETE_STEP,
    DEFAULT_ACTION,
    INITIAL_STEP,
    PREVIOUS_KEY,
    RESERVED_KEYS,
)
from .contracts import (
    ChainCallbacks,
    ChainCombinedResult,
    HistoryEntry,
    InitialResult,
    Payload,
    StepResult,
)
from .errors import (
    ChainError,
    InvalidInitialResult,
    InvalidStepResponse,
    NonSuccessStatus,
    Redirected,
    StepSignaledFailure,
    TransportFailure,
)
from .merge import MergePolicy, merge
from .normalize import normalize_result
from .progress import ProgressPublisher, get_publisher
from .result import Err, Ok, Result
from .serialization import serialize
from .transports import BaseStepTransport, get_transport

logger = logging.getLogger(__name__)

ChainOutcome = Result[ChainCombinedResult, ChainError]
InitialInput = Union[InitialResult, Mapping[str, Any], None]
SubmissionHandler = Callable[[InitialInput], Awaitable[ChainOutcome]]


class ChainState(str, Enum):
    NOT_STARTED = "not_started"
    SEEDING = "seeding"
    STEPPING = "stepping"
    COMPLETED = "completed"
    FAILED = "failed"
    REDIRECTED = "redirected"


TERMINAL_STATES = frozenset(
    {ChainState.COMPLETED, ChainState.FAILED, ChainState.REDIRECTED}
)

_TRANSITIONS: Dict[ChainState, frozenset] = {
    ChainState.NOT_STARTED: frozenset({ChainState.SEEDING}),
    ChainState.SEEDING: frozenset(
        {
            ChainState.STEPPING,
            ChainState.COMPLETED,
            ChainState.FAILED,
            ChainState.REDIRECTED,
        }
    ),
    ChainState.STEPPING: frozenset(
        {
            ChainState.STEPPING,
            ChainState.COMPLETED,
            ChainState.FAILED,
            ChainState.REDIRECTED,
        }
    ),
}


@dataclass
class ChainRun:
    """State owned by a single chain execution."""

    step_names: List[str]
    state: ChainState = ChainState.NOT_STARTED
    index: int = 0
    payload: Payload = field(default_factory=dict)
    history: List[HistoryEntry] = field(default_factory=list)
    result: Optional[ChainCombinedResult] = None
    error: Optional[ChainError] = None

    @property
    def total(self) -> int:
        return len(self.step_names)

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, state: ChainState, index: Optional[int] = None) -> None:
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if state not in allowed:
            raise RuntimeError(
                f"Invalid chain transition {self.state.value} -> {state.value}"
            )
        logger.debug(f"Chain state {self.state.value} -> {state.value}")
        self.state = state
        if index is not None:
            self.index = index


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


async def _invoke(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


def _forward_data(result: StepResult) -> Payload:
    """Return the step's data without keys reserved for chain bookkeeping."""
    collisions = RESERVED_KEYS.intersection(result.data)
    if not collisions:
        return result.data
    logger.warning(
        f'Step "{result.step}" returned reserved keys {sorted(collisions)}, '
        "ignoring them."
    )
    return {k: v for k, v in result.data.items() if k not in RESERVED_KEYS}


class ChainRunner:
    """Runs an ordered list of steps after an initial submission succeeds.

    Each step receives the accumulated payload under ``__previous`` and its
    returned data is merged forward. The first failure ends the chain.
    """

    def __init__(
        self,
        transport: BaseStepTransport,
        publisher: Optional[ProgressPublisher] = None,
        merge_policy: Union[MergePolicy, str, None] = None,
        config: Optional[FormChainConfig] = None,
    ) -> None:
        self._transport = transport
        self._publisher = publisher or get_publisher()
        if merge_policy is None:
            merge_policy = config.merge_policy if config else MergePolicy.DEEP
        self._merge_policy = MergePolicy(merge_policy)
        self._active = False
        self.last_run: Optional[ChainRun] = None

    @property
    def publisher(self) -> ProgressPublisher:
        return self._publisher

    @property
    def merge_policy(self) -> MergePolicy:
        return self._merge_policy

    def run_chain(
        self, step_names: Sequence[str], callbacks: Optional[ChainCallbacks] = None
    ) -> SubmissionHandler:
        """Return a handler to call once the initial submission has finished."""
        names = list(step_names)

        async def handle_submission(initial: InitialInput) -> ChainOutcome:
            return await self.execute(names, initial, callbacks)

        return handle_submission

    async def execute(
        self,
        step_names: Sequence[str],
        initial: InitialInput,
        callbacks: Optional[ChainCallbacks] = None,
    ) -> ChainOutcome:
        """Run every step in order, seeded by ``initial``.

        Returns:
            ``Ok`` with the combined result when all steps succeed, otherwise
            ``Err`` with the error that stopped the chain. The same value is
            passed to the matching callback and published as progress.
        """
        if self._active:
            raise RuntimeError("ChainRunner is already executing a chain")

        self._active = True
        try:
            return await self._execute(
                list(step_names), initial, callbacks or ChainCallbacks()
            )
        finally:
            self._active = False

    async def _execute(
        self,
        names: List[str],
        initial: InitialInput,
        callbacks: ChainCallbacks,
    ) -> ChainOutcome:
        run = ChainRun(step_names=names)
        self.last_run = run

        run.transition(ChainState.SEEDING)
        seeded = self._seed(initial, names[0] if names else DEFAULT_ACTION)
        if isinstance(seeded, Err):
            return await self._fail(run, seeded.error, callbacks)

        run.payload = seeded.value
        # observers get copies so they cannot alter the payload sent onward
        self._publisher.start(INITIAL_STEP, dict(run.payload))

        chain_started = time.perf_counter()
        for index, name in enumerate(names, start=1):
            run.transition(ChainState.STEPPING, index)
            self._publisher.start(name, dict(run.payload), index, run.total)
            await _invoke(callbacks.on_step, name, dict(run.payload), index, run.total)
            logger.info(f'Running step {index}/{run.total} "{name}"')

            entry, outcome = await self._call_step(name, run.payload)
            run.history.append(entry)
            if isinstance(outcome, Err):
                return await self._fail(run, outcome.error, callbacks)

            run.payload = merge(
                run.payload, _forward_data(outcome.value), self._merge_policy
            )

        total_ms = _elapsed_ms(chain_started)
        final_step = names[-1] if names else COMPLETE_STEP
        result = ChainCombinedResult(
            step=final_step,
            message=f"Completed {run.total} chained actions in {total_ms}ms.",
            final={**run.payload, "step": final_step},
            history=list(run.history),
        )

        run.transition(ChainState.COMPLETED)
        run.result = result
        logger.info(result.message)
        self._publisher.complete(result)
        await _invoke(callbacks.on_success, result)
        return Ok(result)

    def _seed(
        self, initial: InitialInput, first_step: str
    ) -> Result[Payload, ChainError]:
        """Turn the initial submission outcome into the starting payload."""
        if initial is None:
            return Err(InvalidInitialResult("Missing initial action result."))

        if isinstance(initial, Mapping) and "type" not in initial:
            # a bare step result rather than an action-result envelope
            initial = InitialResult.success(dict(initial))
        elif not isinstance(initial, InitialResult):
            try:
                initial = InitialResult.model_validate(initial)
            except ValidationError as e:
                return Err(
                    InvalidInitialResult(f"Malformed initial action result: {e}")
                )

        if initial.type == "redirect":
            return Err(Redirected(initial.location))
        if initial.type == "failure":
            return Err(
                InvalidInitialResult(
                    f"Initial action failed with status {initial.status}.", initial
                )
            )
        if initial.type == "error":
            return Err(
                InvalidInitialResult(
                    f"Initial action errored: {initial.error}", initial
                )
            )

        if not initial.data:
            return Ok({})

        normalized = normalize_result(initial.data, first_step)
        if isinstance(normalized, Err):
            return Err(InvalidInitialResult(normalized.error.message, initial))
        if not normalized.value.ok:
            message = normalized.value.message or "Initial action reported failure."
            return Err(InvalidInitialResult(message, initial))
        return Ok(_forward_data(normalized.value))

    async def _call_step(
        self, name: str, payload: Payload
    ) -> Tuple[HistoryEntry, Result[StepResult, ChainError]]:
        """Invoke one step and classify its outcome."""
        form = {PREVIOUS_KEY: serialize(payload)}

        started = time.perf_counter()
        try:
            response = await self._transport.call(name, form)
        except Exception as e:
            error = TransportFailure(
                f'Step "{name}" could not be reached: {e}', name, e
            )
            return self._failed_entry(name, started, error), Err(error)
        duration_ms = _elapsed_ms(started)

        if response.is_redirect:
            error = Redirected(response.location, step=name)
            return self._failed_entry(name, started, error, duration_ms), Err(error)
        if not response.ok:
            error = NonSuccessStatus(name, response.status, response.text)
            return self._failed_entry(name, started, error, duration_ms), Err(error)

        try:
            body = response.json()
        except ValueError as e:
            error = InvalidStepResponse(
                f'Step "{name}" returned a body that is not JSON: {e}',
                step=name,
                detail=response.text,
            )
            return self._failed_entry(name, started, error, duration_ms), Err(error)

        envelope_type = body.get("type") if isinstance(body, Mapping) else None
        if envelope_type == "redirect":
            error = Redirected(body.get("location"), step=name)
            return self._failed_entry(name, started, error, duration_ms), Err(error)
        if envelope_type in ("failure", "error"):
            # an action result that failed even though the HTTP status was 2xx
            status = body.get("status")
            if not isinstance(status, int) or isinstance(status, bool):
                status = 400 if envelope_type == "failure" else 500
            error = NonSuccessStatus(name, status, response.text)
            return self._failed_entry(name, started, error, duration_ms), Err(error)

        normalized = normalize_result(body, name)
        if isinstance(normalized, Err):
            return (
                self._failed_entry(name, started, normalized.error, duration_ms),
                normalized,
            )

        result = normalized.value
        entry = HistoryEntry(
            step=result.step,
            ok=result.ok,
            duration_ms=duration_ms,
            message=result.message,
        )
        if not result.ok:
            return entry, Err(StepSignaledFailure(result))
        return entry, Ok(result)

    @staticmethod
    def _failed_entry(
        name: str,
        started: float,
        error: ChainError,
        duration_ms: Optional[float] = None,
    ) -> HistoryEntry:
        return HistoryEntry(
            step=name,
            ok=False,
            duration_ms=_elapsed_ms(started) if duration_ms is None else duration_ms,
            message=error.message,
        )

    async def _fail(
        self, run: ChainRun, error: ChainError, callbacks: ChainCallbacks
    ) -> ChainOutcome:
        if isinstance(error, Redirected):
            state = ChainState.REDIRECTED
        else:
            state = ChainState.FAILED
        run.transition(state)
        run.error = error
        logger.error(
            f"Chain stopped at step {run.index}/{run.total} "
            f"({error.step or 'initial'}) [{error.kind}]: {error.message}"
        )
        self._publisher.fail(error)
        await _invoke(callbacks.on_error, error)
        return Err(error)


def run_chain(
    step_names: Sequence[str],
    callbacks: Optional[ChainCallbacks] = None,
    transport: Optional[BaseStepTransport] = None,
    publisher: Optional[ProgressPublisher] = None,
    config: Optional[FormChainConfig] = None,
) -> SubmissionHandler:
    """Build a runner from configuration and return its submission handler.

    A transport created here from ``config`` is connected for each submission
    and closed once the chain finishes. A ``transport`` passed in is left for
    the caller to manage.
    """
    config = config or load_config()
    if transport is not None:
        runner = ChainRunner(transport, publisher=publisher, config=config)
        return runner.run_chain(step_names, callbacks)

    owned = get_transport(config=config)
    handler = ChainRunner(owned, publisher=publisher, config=config).run_chain(
        step_names, callbacks
    )

    async def handle_and_close(initial: InitialInput) -> ChainOutcome:
        async with owned:
            return await handler(initial)

    return handle_and_close
