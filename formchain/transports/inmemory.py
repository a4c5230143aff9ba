"""In-process step transport for tests and local chains."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..contracts import StepResponse
from .base import BaseStepTransport

logger = logging.getLogger(__name__)

StepHandler = Callable[[Dict[str, str]], Any]


class InMemoryStepTransport(BaseStepTransport):
    """Dispatches step calls to registered Python callables.

    A handler receives the form mapping and returns either a mapping (sent
    back as a 200 JSON body) or a :class:`StepResponse`. Exceptions raised by
    a handler become a 500 response carrying the error text.
    """

    def __init__(self, handlers: Optional[Mapping[str, StepHandler]] = None) -> None:
        self._handlers: Dict[str, StepHandler] = dict(handlers or {})
        self.calls: List[Tuple[str, Dict[str, str]]] = []

    def register(self, name: str, handler: StepHandler) -> None:
        self._handlers[name] = handler

    def action(
        self, name: Optional[str] = None
    ) -> Callable[[StepHandler], StepHandler]:
        """Decorator registering a handler under ``name`` or its function name."""

        def decorator(handler: StepHandler) -> StepHandler:
            self.register(name or handler.__name__, handler)
            return handler

        return decorator

    @property
    def step_names(self) -> List[str]:
        return list(self._handlers)

    async def call(self, step: str, form: Mapping[str, str]) -> StepResponse:
        body = dict(form)
        self.calls.append((step, body))

        handler = self._handlers.get(step)
        if handler is None:
            return StepResponse(status=404, body=f'No action with name "{step}" found')

        try:
            result = handler(body)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.exception(f'Action "{step}" raised')
            return StepResponse(status=500, body=str(e))

        if isinstance(result, StepResponse):
            return result
        return StepResponse.from_json(result)
