"""
Serializer for converting taskpilot messages to the `{role, content}` chat format.
"""

from taskpilot.llm.messages import (
    AssistantMessage,
    BaseMessage,
    SystemMessage,
    UserMessage,
)


class ChatMessageSerializer:
    """Serializer shared by the Ollama and Hugging Face transports."""

    @staticmethod
    def serialize(message: BaseMessage) -> dict[str, str]:
        """Serialize a message to chat format.

        Returns:
            Dict with 'role' and 'content' keys, compatible with Ollama and transformers chat templates.
        """
        if isinstance(message, (SystemMessage, UserMessage, AssistantMessage)):
            return {'role': message.role, 'content': message.content or ''}
        else:
            raise ValueError(f'Unknown message type: {type(message)}')

    @staticmethod
    def serialize_messages(messages: list[BaseMessage]) -> list[dict[str, str]]:
        return [ChatMessageSerializer.serialize(m) for m in messages]
