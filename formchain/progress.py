"""Live progress record for the most recently active chain."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, AsyncIterator, Callable, List, Optional, Set

from pydantic import BaseModel, ConfigDict

from .constants import COMPLETE_STEP, ERROR_STEP, IDLE_STEP

logger = logging.getLogger(__name__)

TERMINAL_STEPS = frozenset({COMPLETE_STEP, ERROR_STEP})

# 100 is reserved for terminal records
RUNNING_PERCENT_CAP = 99


class ProgressRecord(BaseModel):
    """Immutable snapshot of chain progress."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    step: str = IDLE_STEP
    current: int = 0
    total: int = 0
    percent: int = 0
    ok: Optional[bool] = None
    message: Optional[str] = None
    data: Any = None
    error: Any = None

    @property
    def is_terminal(self) -> bool:
        return self.step in TERMINAL_STEPS


def compute_percent(current: int, total: int) -> int:
    """Whole-number percentage, halves rounded up; ``0`` for an empty chain."""
    if total <= 0:
        return 0
    return int(math.floor(current / total * 100 + 0.5))


ProgressListener = Callable[[ProgressRecord], None]


class ProgressPublisher:
    """Single-writer, many-reader cell holding the latest :class:`ProgressRecord`.

    Every mutator replaces the whole record. Listeners are called
    synchronously on each replace; :meth:`watch` readers only ever see the
    most recent state and may skip intermediate ones.
    """

    def __init__(self) -> None:
        self._record = ProgressRecord()
        self._version = 0
        self._listeners: List[ProgressListener] = []
        self._waiters: Set[asyncio.Event] = set()

    @property
    def state(self) -> ProgressRecord:
        return self._record

    @property
    def version(self) -> int:
        return self._version

    def _publish(self, record: ProgressRecord) -> None:
        self._record = record
        self._version += 1
        for waiter in list(self._waiters):
            waiter.set()
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:
                logger.exception(f"Progress listener {listener!r} failed")

    def start(
        self,
        step: str,
        data: Optional[dict] = None,
        current: int = 0,
        total: int = 0,
    ) -> ProgressRecord:
        """Record that ``step`` (1-based ``current`` of ``total``) is running.

        The last step of a chain reports 99 until :meth:`complete` is called.
        """
        record = ProgressRecord(
            step=step,
            current=current,
            total=total,
            percent=min(compute_percent(current, total), RUNNING_PERCENT_CAP),
            data=data,
        )
        self._publish(record)
        return record

    def complete(self, final: Any = None) -> ProgressRecord:
        """Record successful completion, attaching ``final`` as data."""
        if isinstance(final, BaseModel):
            final = final.model_dump()

        ok: Optional[bool] = None
        message: Optional[str] = None
        if isinstance(final, dict):
            if isinstance(final.get("message"), str):
                message = final["message"]
            if isinstance(final.get("ok"), bool):
                ok = final["ok"]

        record = ProgressRecord(
            step=COMPLETE_STEP,
            current=1,
            total=1,
            percent=100,
            ok=True if ok is None else ok,
            message=message,
            data=final,
        )
        self._publish(record)
        return record

    def fail(self, error: Any) -> ProgressRecord:
        """Record a failed chain, attaching ``error`` verbatim."""
        record = ProgressRecord(
            step=ERROR_STEP,
            current=1,
            total=1,
            percent=100,
            ok=False,
            error=error,
        )
        self._publish(record)
        return record

    def reset(self) -> ProgressRecord:
        """Return to the ``idle`` state."""
        record = ProgressRecord()
        self._publish(record)
        return record

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Call ``listener`` now and on every replace; returns an unsubscriber."""
        self._listeners.append(listener)
        listener(self._record)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def watch(
        self, lifespan: Optional[float] = None, stop_on_terminal: bool = False
    ) -> AsyncIterator[ProgressRecord]:
        """Yield the latest record each time it changes.

        Args:
            lifespan: Maximum time in seconds to keep watching. If None, watch
                indefinitely.
            stop_on_terminal: Stop after yielding a ``complete`` or ``error``
                record.
        """
        loop = asyncio.get_event_loop()
        deadline = loop.time() + lifespan if lifespan else None
        seen = -1

        while True:
            if self._version != seen:
                seen = self._version
                record = self._record
                yield record
                if stop_on_terminal and record.is_terminal:
                    return
                continue

            timeout = None
            if deadline is not None:
                timeout = deadline - loop.time()
                if timeout <= 0:
                    return

            waiter = asyncio.Event()
            self._waiters.add(waiter)
            try:
                if self._version == seen:
                    await asyncio.wait_for(waiter.wait(), timeout)
            except asyncio.TimeoutError:
                return
            finally:
                self._waiters.discard(waiter)


_publisher_instance: ProgressPublisher | None = None


def get_publisher() -> ProgressPublisher:
    """Return the process-wide default publisher, creating it on first use."""
    global _publisher_instance
    if _publisher_instance is None:
        _publisher_instance = ProgressPublisher()
    return _publisher_instance
