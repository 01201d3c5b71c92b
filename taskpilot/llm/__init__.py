"""Model transports for taskpilot."""

from taskpilot.llm.base import BaseChatModel
from taskpilot.llm.exceptions import ModelProviderError
from taskpilot.llm.messages import AssistantMessage, BaseMessage, SystemMessage, UserMessage
from taskpilot.llm.ollama import ChatOllama

__all__ = [
    "AssistantMessage",
    "BaseChatModel",
    "BaseMessage",
    "ChatOllama",
    "ModelProviderError",
    "SystemMessage",
    "UserMessage",
]
