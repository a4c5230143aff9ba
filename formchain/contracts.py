"""Core data contracts for formchain."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic_core import to_jsonable_python

Payload = Dict[str, Any]


class StepResult(BaseModel):
    """Canonical shape every step call is normalized into."""

    model_config = ConfigDict(frozen=True)

    step: str
    ok: bool = True
    message: str = ""
    data: Payload = Field(default_factory=dict)


class HistoryEntry(BaseModel):
    """Outcome of one attempted step."""

    model_config = ConfigDict(frozen=True)

    step: str
    ok: bool
    duration_ms: float
    message: Optional[str] = None


class ChainCombinedResult(BaseModel):
    """Terminal value of a chain that ran every step successfully."""

    step: str
    ok: Literal[True] = True
    message: str
    final: Payload = Field(default_factory=dict)
    history: List[HistoryEntry] = Field(default_factory=list)


class InitialResult(BaseModel):
    """Outcome of the first submission, handed to the chain by the caller.

    ``type`` follows the action-result convention: ``success`` carries data,
    ``failure`` is an explicit rejection, ``redirect`` and ``error`` end the
    chain before any step runs.
    """

    type: Literal["success", "failure", "redirect", "error"] = "success"
    status: int = 200
    data: Any = None
    location: Optional[str] = None
    error: Any = None

    @classmethod
    def success(cls, data: Any = None, status: int = 200) -> "InitialResult":
        return cls(type="success", status=status, data=data)

    @classmethod
    def failure(cls, data: Any = None, status: int = 400) -> "InitialResult":
        return cls(type="failure", status=status, data=data)


class StepResponse(BaseModel):
    """Raw response from a per-step call before normalization."""

    status: int = 200
    body: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400

    @property
    def location(self) -> Optional[str]:
        for key, value in self.headers.items():
            if key.lower() == "location":
                return value
        return None

    @property
    def text(self) -> str:
        return self.body

    def json(self) -> Any:
        return json.loads(self.body)

    @classmethod
    def from_json(cls, data: Any, status: int = 200) -> "StepResponse":
        return cls(
            status=status,
            body=json.dumps(data, default=to_jsonable_python),
            headers={"content-type": "application/json"},
        )


StepCallback = Callable[[str, Payload, int, int], Union[None, Awaitable[None]]]
SuccessCallback = Callable[[ChainCombinedResult], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Any], Union[None, Awaitable[None]]]


@dataclass
class ChainCallbacks:
    """Optional lifecycle hooks for a chain run."""

    on_step: Optional[StepCallback] = None
    on_success: Optional[SuccessCallback] = None
    on_error: Optional[ErrorCallback] = None
