"""The turn protocol: snapshot, query, validate, act."""

from taskpilot.agent.config import TaskRunnerSettings
from taskpilot.agent.errors import classify_validation_error, classify_violation
from taskpilot.agent.executor import TurnExecutor
from taskpilot.agent.ids import extract_ids
from taskpilot.agent.runner import TaskRunner
from taskpilot.agent.schema import (
    ATTEMPT_KINDS,
    Attempt,
    ClickAttempt,
    FailAttempt,
    FinishAttempt,
    ResponseSchema,
    SetValueAttempt,
)
from taskpilot.agent.views import (
    AttemptError,
    HistoryEntry,
    RunState,
    TurnFailure,
    TurnOutcome,
    TurnSuccess,
    TurnUsage,
)

__all__ = [
    "ATTEMPT_KINDS",
    "Attempt",
    "AttemptError",
    "ClickAttempt",
    "FailAttempt",
    "FinishAttempt",
    "HistoryEntry",
    "ResponseSchema",
    "RunState",
    "SetValueAttempt",
    "TaskRunner",
    "TaskRunnerSettings",
    "TurnExecutor",
    "TurnFailure",
    "TurnOutcome",
    "TurnSuccess",
    "TurnUsage",
    "classify_validation_error",
    "classify_violation",
    "extract_ids",
]
