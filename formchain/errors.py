"""Failure taxonomy for chain runs.

All errors are reported to callers the same way; the distinct types exist
for logging and diagnostics.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .contracts import InitialResult, StepResult


class ChainError(Exception):
    """Base class for every way a chain run can stop short of success."""

    kind = "chain_error"

    def __init__(self, message: str, step: Optional[str] = None, detail: Any = None):
        super().__init__(message)
        self.step = step
        self.detail = detail

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "step": self.step, "message": self.message}


class InvalidInitialResult(ChainError):
    """The first submission failed or produced an unusable result."""

    kind = "invalid_initial_result"

    def __init__(self, message: str, initial: "InitialResult | None" = None):
        super().__init__(message, step=None, detail=initial)
        self.initial = initial


class InvalidStepResponse(ChainError):
    """A step body could not be normalized into a StepResult."""

    kind = "invalid_step_response"


class TransportFailure(ChainError):
    """The outbound call raised before producing a response."""

    kind = "transport_failure"

    def __init__(self, message: str, step: str, cause: BaseException):
        super().__init__(message, step=step, detail=cause)
        self.cause = cause


class NonSuccessStatus(ChainError):
    """The transport returned an explicit failure status."""

    kind = "non_success_status"

    def __init__(self, step: str, status: int, body: str):
        super().__init__(
            f'Step "{step}" failed with status {status}: {body}',
            step=step,
            detail=body,
        )
        self.status = status
        self.body = body

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status
        return data


class StepSignaledFailure(ChainError):
    """A well-formed step body reported ``ok: false``."""

    kind = "step_signaled_failure"

    def __init__(self, result: "StepResult"):
        message = result.message or f'Step "{result.step}" reported failure.'
        super().__init__(message, step=result.step, detail=result)
        self.result = result


class Redirected(ChainError):
    """The initial submission or a step asked the client to navigate away."""

    kind = "redirected"

    def __init__(self, location: Optional[str], step: Optional[str] = None):
        where = f'step "{step}"' if step else "initial submission"
        super().__init__(f"Chain redirected by {where} to {location}", step=step)
        self.location = location

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["location"] = self.location
        return data
