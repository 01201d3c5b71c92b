"""
Transport interface between the turn protocol and a model backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from taskpilot.llm.messages import BaseMessage


class BaseChatModel(ABC):
    """
    A model backend reachable through `complete(model, messages)`.

    `complete` returns the raw response body as text. The body is an Ollama-style
    chat response: `{"message": {"role", "content"}, "prompt_eval_count", "eval_count"}`,
    or `{"error": "..."}` when the backend refused the request.
    """

    @property
    @abstractmethod
    def provider(self) -> str: ...

    @abstractmethod
    async def complete(
        self,
        model: str,
        messages: list[BaseMessage],
        output_format: dict[str, Any] | None = None,
    ) -> str:
        """
        Send one chat request.

        Args:
            model: Model identifier understood by the backend
            messages: Ordered chat messages
            output_format: JSON schema constraining the reply, passed through as-is

        Raises:
            ModelProviderError: the backend could not be reached or answered with a failure status
        """
