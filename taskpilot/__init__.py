"""
taskpilot: a language-model agent that drives a live document one validated action at a time.
"""

from taskpilot.agent import ResponseSchema, RunState, TaskRunner, TaskRunnerSettings, TurnExecutor
from taskpilot.host import HostActionError, HostSession
from taskpilot.llm import ChatOllama, ModelProviderError

__all__ = [
    "ChatOllama",
    "HostActionError",
    "HostSession",
    "ModelProviderError",
    "ResponseSchema",
    "RunState",
    "TaskRunner",
    "TaskRunnerSettings",
    "TurnExecutor",
]
