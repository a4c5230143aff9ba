"""formchain: run a named sequence of form actions, threading data through."""

from .actions import chain_action, read_previous, step_response
from .contracts import (
    ChainCallbacks,
    ChainCombinedResult,
    HistoryEntry,
    InitialResult,
    StepResponse,
    StepResult,
)
from .engine import ChainRunner, ChainState, run_chain
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
from .normalize import normalize
from .progress import ProgressPublisher, ProgressRecord, get_publisher
from .result import Err, Ok
from .serialization import serialize
from .transports import get_transport

__version__ = "0.1.0"
__all__ = [
    "ChainCallbacks",
    "ChainCombinedResult",
    "ChainError",
    "ChainRunner",
    "ChainState",
    "Err",
    "HistoryEntry",
    "InitialResult",
    "InvalidInitialResult",
    "InvalidStepResponse",
    "MergePolicy",
    "NonSuccessStatus",
    "Ok",
    "ProgressPublisher",
    "ProgressRecord",
    "Redirected",
    "StepResponse",
    "StepResult",
    "StepSignaledFailure",
    "TransportFailure",
    "chain_action",
    "get_publisher",
    "get_transport",
    "merge",
    "normalize",
    "read_previous",
    "run_chain",
    "serialize",
    "step_response",
]
