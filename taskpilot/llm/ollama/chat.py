"""
ChatOllama - HTTP transport for a local Ollama server.

Sends non-streaming `/api/chat` requests and hands the raw response body back
to the caller, which owns parsing and validation.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

import httpx

from taskpilot.llm.base import BaseChatModel
from taskpilot.llm.exceptions import ModelProviderError
from taskpilot.llm.messages import BaseMessage
from taskpilot.llm.serializer import ChatMessageSerializer

logger = logging.getLogger(__name__)


@dataclass
class ChatOllama(BaseChatModel):
    """
    Transport for Ollama's chat endpoint.

    Usage:
        from taskpilot.llm.ollama import ChatOllama

        llm = ChatOllama(host="http://localhost:11434", num_ctx=16384)
        body = await llm.complete("llama3.1", messages, output_format=schema)
    """

    host: str = 'http://localhost:11434'
    """Base URL of the Ollama server"""

    timeout: float = 120.0
    """Request timeout in seconds"""

    temperature: float | None = None
    """Sampling temperature (server default when None)"""

    num_ctx: int | None = 16384
    """Context window size"""

    top_k: int | None = None
    """Top-k sampling"""

    seed: int | None = None
    """Sampling seed for reproducible replies"""

    http_client: httpx.AsyncClient | None = None
    """Shared client; a short-lived one is created per request when None"""

    @property
    def provider(self) -> str:
        return 'ollama'

    def _options(self) -> dict[str, Any]:
        options: dict[str, Any] = {}
        if self.temperature is not None:
            options['temperature'] = self.temperature
        if self.num_ctx is not None:
            options['num_ctx'] = self.num_ctx
        if self.top_k is not None:
            options['top_k'] = self.top_k
        if self.seed is not None:
            options['seed'] = self.seed
        return options

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.http_client is not None:
            yield self.http_client
        else:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                yield client

    async def complete(
        self,
        model: str,
        messages: list[BaseMessage],
        output_format: dict[str, Any] | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            'model': model,
            'messages': ChatMessageSerializer.serialize_messages(messages),
            'stream': False,
            'options': self._options(),
        }
        if output_format is not None:
            payload['format'] = output_format

        logger.debug(f"POST {self.host}/api/chat model={model} messages={len(messages)}")
        try:
            async with self._client() as client:
                resp = await client.post(f"{self.host}/api/chat", json=payload)
        except httpx.HTTPError as e:
            raise ModelProviderError(
                message=f"Failed to reach Ollama at {self.host}: {e}",
                model=model,
            ) from e

        if resp.status_code != 200:
            body = resp.text[:500]
            logger.error(f"Ollama returned {resp.status_code}: {body}")
            raise ModelProviderError(
                message=f"Ollama {resp.status_code}: {body}",
                status_code=resp.status_code,
                model=model,
            )
        return resp.text

    async def list_models(self) -> list[str]:
        """
        List the model names installed on the server, for model pickers.

        Returns:
            Model names as reported by `/api/tags`
        """
        try:
            async with self._client() as client:
                resp = await client.get(f"{self.host}/api/tags")
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ModelProviderError(message=f"Failed to list Ollama models: {e}") from e
        return [entry['name'] for entry in resp.json().get('models', [])]
