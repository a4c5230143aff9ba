"""Base interface for per-step callers."""

from __future__ import annotations

import abc
from typing import Mapping

from ..contracts import StepResponse


class BaseStepTransport(metaclass=abc.ABCMeta):
    """Invokes one named step with a form body and returns its raw response.

    Implementations may raise on connection problems or timeouts; the chain
    engine reports those as transport failures.
    """

    async def connect(self) -> None:
        """Open underlying resources (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Release underlying resources (no-op by default)."""
        pass

    async def __aenter__(self) -> "BaseStepTransport":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    @abc.abstractmethod
    async def call(self, step: str, form: Mapping[str, str]) -> StepResponse:
        """Invoke ``step`` with ``form`` as the request body."""
        raise NotImplementedError
