"""Turn outcomes, transcript entries and run state."""

from __future__ import annotations

import json
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from taskpilot.agent.schema import Attempt

RunStatus = Literal['idle', 'running', 'success', 'error', 'interrupted']

ActionStatus = Literal[
    'idle',
    'attaching',
    'pulling-snapshot',
    'transforming-snapshot',
    'querying',
    'acting',
    'waiting',
]


class TurnUsage(BaseModel):
    """Token counters reported by the model backend for one turn."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @computed_field
    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class AttemptError(BaseModel):
    """Transcript action recorded for a reply that failed validation."""

    model_config = ConfigDict(frozen=True)

    kind: Literal['error'] = 'error'
    error: str


class TurnSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    usage: TurnUsage
    prompt: str
    response: str
    attempt: Attempt


class TurnFailure(BaseModel):
    """A reply that reached the backend and came back, but was rejected."""

    model_config = ConfigDict(frozen=True)

    usage: TurnUsage
    prompt: str
    response: str
    error: str


TurnOutcome = Union[TurnSuccess, TurnFailure]


class HistoryEntry(BaseModel):
    """One completed turn of the transcript."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    response: str
    action: Union[Attempt, AttemptError]
    usage: TurnUsage

    @classmethod
    def from_outcome(cls, outcome: TurnOutcome) -> HistoryEntry:
        if isinstance(outcome, TurnSuccess):
            action = outcome.attempt
        else:
            action = AttemptError(error=outcome.error)
        return cls(prompt=outcome.prompt, response=outcome.response, action=action, usage=outcome.usage)

    @property
    def is_error(self) -> bool:
        return isinstance(self.action, AttemptError)

    @property
    def title(self) -> str:
        """Short label for transcript viewers."""
        if isinstance(self.action, AttemptError):
            return f"Error: {self.action.error}"
        return self.action.rationale


class RunState(BaseModel):
    """
    Observable state of the task runner.

    Fields are replaced whole, never edited in place, so readers always see a
    consistent value.
    """

    status: RunStatus = 'idle'
    action_status: ActionStatus = 'idle'
    instructions: str | None = None
    target_id: int | str | None = None
    history: tuple[HistoryEntry, ...] = Field(default_factory=tuple)

    def total_usage(self) -> TurnUsage:
        return TurnUsage(
            prompt_tokens=sum(entry.usage.prompt_tokens for entry in self.history),
            completion_tokens=sum(entry.usage.completion_tokens for entry in self.history),
        )

    def history_json(self, indent: int | None = 2) -> str:
        """The transcript as JSON, as offered by the history viewer's copy button."""
        return json.dumps(
            [entry.model_dump(mode='json', by_alias=True) for entry in self.history],
            indent=indent,
        )
