"""
Chat message types exchanged with model transports.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict


class BaseMessage(BaseModel):
    """A single chat message with a role and plain-text content."""

    model_config = ConfigDict(frozen=True)

    role: str
    content: str


class SystemMessage(BaseMessage):
    role: Literal['system'] = 'system'


class UserMessage(BaseMessage):
    role: Literal['user'] = 'user'


class AssistantMessage(BaseMessage):
    role: Literal['assistant'] = 'assistant'
