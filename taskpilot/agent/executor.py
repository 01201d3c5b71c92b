"""
TurnExecutor: one model query for one snapshot.

Composes the conversation, calls the transport, and validates the reply with a
schema built from the same snapshot. Validation failures come back as a
`TurnFailure`; they never raise.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Sequence

from pydantic import ValidationError

from taskpilot.agent.errors import classify_validation_error
from taskpilot.agent.prompts import SYSTEM_MESSAGE, format_prompt, render_action
from taskpilot.agent.schema import ResponseSchema
from taskpilot.agent.views import HistoryEntry, TurnFailure, TurnOutcome, TurnSuccess, TurnUsage
from taskpilot.llm.base import BaseChatModel
from taskpilot.llm.exceptions import ModelProviderError
from taskpilot.llm.messages import AssistantMessage, BaseMessage, SystemMessage, UserMessage

logger = logging.getLogger(__name__)


class TurnExecutor:
    def __init__(
        self,
        llm: BaseChatModel,
        instructions: str,
        *,
        max_attempts: int = 3,
        notify_error: Callable[[str], None] | None = None,
    ):
        """
        Args:
            llm: Model transport
            instructions: The user's task, repeated in every turn's prompt
            max_attempts: Transport attempts per turn
            notify_error: Called with a message for every transport failure and rejected reply
        """
        self.llm = llm
        self.instructions = instructions
        self.max_attempts = max_attempts
        self.notify_error = notify_error

    def _notify(self, message: str) -> None:
        if self.notify_error:
            self.notify_error(message)

    def build_messages(self, prior_turns: Sequence[HistoryEntry], prompt: str) -> list[BaseMessage]:
        messages: list[BaseMessage] = [SystemMessage(content=SYSTEM_MESSAGE)]
        for entry in prior_turns:
            messages.append(UserMessage(content=entry.prompt))
            messages.append(AssistantMessage(content=render_action(entry.action)))
        messages.append(UserMessage(content=prompt))
        return messages

    @staticmethod
    def _parse_body(raw: str, model: str) -> tuple[str, TurnUsage]:
        """
        Split a chat response body into the reply text and its token usage.

        Raises:
            ModelProviderError: the body is not JSON, carries an error, or has the wrong shape
        """
        try:
            body = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ModelProviderError(message=f"Malformed response body: {e}", model=model) from e
        if not isinstance(body, dict):
            raise ModelProviderError(message="Malformed response body: expected a JSON object", model=model)
        if body.get('error'):
            raise ModelProviderError(message=str(body['error']), model=model)

        message = body.get('message') or {}
        if not isinstance(message, dict):
            raise ModelProviderError(message="Malformed response body: 'message' is not an object", model=model)
        content = message.get('content') or ''
        if not isinstance(content, str):
            raise ModelProviderError(message="Malformed response body: 'content' is not a string", model=model)

        try:
            usage = TurnUsage(
                prompt_tokens=body.get('prompt_eval_count') or 0,
                completion_tokens=body.get('eval_count') or 0,
            )
        except ValidationError as e:
            raise ModelProviderError(message=f"Malformed token counts: {e.errors()[0]['msg']}", model=model) from e
        return content.strip(), usage

    async def execute(
        self, model: str, prior_turns: Sequence[HistoryEntry], snapshot: str
    ) -> TurnOutcome | None:
        """
        Query the model once for the next action on `snapshot`.

        Returns:
            TurnSuccess or TurnFailure, or None when every transport attempt failed
        """
        schema = ResponseSchema.build(snapshot)
        prompt = format_prompt(self.instructions, snapshot)
        messages = self.build_messages(prior_turns, prompt)
        logger.debug(f"Prompt ({len(prompt)} chars, {len(prior_turns)} prior turns):\n{prompt}")

        for attempt_number in range(1, self.max_attempts + 1):
            try:
                raw = await self.llm.complete(model, messages, output_format=schema.json_schema())
                response, usage = self._parse_body(raw, model)
            except ModelProviderError as e:
                logger.warning(f"Model query failed ({attempt_number}/{self.max_attempts}): {e.message}")
                self._notify(e.message)
                continue

            logger.debug(f"Raw model reply: {response}")

            try:
                attempt = schema.validate_json(response)
            except ValidationError as e:
                error = classify_validation_error(e)
                logger.info(f"❌ Reply rejected: {error}")
                self._notify(error)
                return TurnFailure(usage=usage, prompt=prompt, response=response, error=error)

            logger.info(f"✅ Reply accepted: {attempt.kind}")
            return TurnSuccess(usage=usage, prompt=prompt, response=response, attempt=attempt)

        logger.error(f"Failed to complete query after {self.max_attempts} attempts")
        return None
