"""
ChatHuggingFace - Local transport backed by Hugging Face transformers models.

This allows running the turn protocol against a local model without an Ollama
server. Replies are wrapped in the same body shape Ollama returns, so callers
parse both transports identically.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from typing import Any

from taskpilot.llm.base import BaseChatModel
from taskpilot.llm.exceptions import ModelProviderError
from taskpilot.llm.messages import BaseMessage, UserMessage
from taskpilot.llm.serializer import ChatMessageSerializer

try:
    from transformers import AutoModelForCausalLM, AutoTokenizer
    import torch
    TRANSFORMERS_AVAILABLE = True
except ImportError:
    TRANSFORMERS_AVAILABLE = False

logger = logging.getLogger(__name__)


@dataclass
class ChatHuggingFace(BaseChatModel):
    """
    Wrapper for Hugging Face transformers models.

    Usage:
        from taskpilot.llm.huggingface import ChatHuggingFace

        llm = ChatHuggingFace(
            model="Qwen/Qwen2.5-3B-Instruct",
            device_map="auto",  # or "cpu", "cuda", etc.
        )
    """

    model: str
    """Model name or path (e.g., "Qwen/Qwen2.5-3B-Instruct")"""

    device_map: str = "auto"
    """Device to load model on: "auto", "cpu", "cuda", "cuda:0", etc."""

    torch_dtype: str | None = None
    """Torch dtype: "float16", "bfloat16", "float32", or None for auto"""

    max_new_tokens: int = 512
    """Maximum number of new tokens to generate"""

    temperature: float = 0.7
    """Sampling temperature"""

    top_p: float = 0.9
    """Top-p sampling"""

    do_sample: bool = True
    """Whether to use sampling"""

    trust_remote_code: bool = False
    """Trust remote code when loading model"""

    # Internal state
    _tokenizer: Any = None
    _model: Any = None
    _model_loaded: bool = False

    def __post_init__(self):
        if not TRANSFORMERS_AVAILABLE:
            raise ImportError(
                "transformers library is required for ChatHuggingFace. "
                "Install with: pip install 'taskpilot[huggingface]'"
            )

    @property
    def provider(self) -> str:
        return 'huggingface'

    def _load_model(self) -> None:
        """Lazy load the model and tokenizer."""
        if self._model_loaded:
            return

        logger.info(f"🔄 Loading Hugging Face model: {self.model} (first run downloads the weights)")
        os.environ.setdefault('TRANSFORMERS_VERBOSITY', 'info')
        os.environ.setdefault('HF_HUB_DISABLE_PROGRESS_BARS', '0')

        try:
            self._tokenizer = AutoTokenizer.from_pretrained(
                self.model,
                trust_remote_code=self.trust_remote_code,
            )
            if self._tokenizer.pad_token is None:
                self._tokenizer.pad_token = self._tokenizer.eos_token

            model_kwargs: dict[str, Any] = {
                'trust_remote_code': self.trust_remote_code,
                'device_map': self.device_map,
            }
            if self.torch_dtype:
                dtype_map = {
                    'float16': torch.float16,
                    'bfloat16': torch.bfloat16,
                    'float32': torch.float32,
                }
                if self.torch_dtype in dtype_map:
                    model_kwargs['torch_dtype'] = dtype_map[self.torch_dtype]

            self._model = AutoModelForCausalLM.from_pretrained(self.model, **model_kwargs)
            self._model.eval()
            self._model_loaded = True
            logger.info(f"✅ Model fully loaded: {self.model}")

        except Exception as e:
            raise ModelProviderError(
                message=f"Failed to load Hugging Face model {self.model}: {str(e)}",
                model=self.model,
            ) from e

    def _format_messages_for_chat(self, messages: list[BaseMessage]) -> str:
        """Format messages using the model's chat template."""
        chat_messages = ChatMessageSerializer.serialize_messages(messages)

        if hasattr(self._tokenizer, 'apply_chat_template') and self._tokenizer.chat_template:
            try:
                return self._tokenizer.apply_chat_template(
                    chat_messages,
                    tokenize=False,
                    add_generation_prompt=True,
                )
            except Exception as e:
                logger.warning(f"Failed to apply chat template: {e}, using simple format")

        # Fallback: simple format
        formatted_parts = [f"{msg['role'].capitalize()}: {msg['content']}" for msg in chat_messages]
        return "\n\n".join(formatted_parts) + "\n\nAssistant:"

    async def complete(
        self,
        model: str,
        messages: list[BaseMessage],
        output_format: dict[str, Any] | None = None,
    ) -> str:
        if model and model != self.model:
            logger.info(f"Switching Hugging Face model: {self.model} -> {model}")
            self.model = model
            self._model_loaded = False
        self._load_model()

        if output_format is not None:
            messages = self._with_schema_instruction(messages, output_format)

        # Run inference in thread pool to avoid blocking
        loop = asyncio.get_running_loop()
        try:
            completion, prompt_tokens, completion_tokens = await loop.run_in_executor(
                None,
                self._generate_text,
                messages,
            )
        except Exception as e:
            raise ModelProviderError(
                message=f"Failed to generate text: {str(e)}",
                model=self.model,
            ) from e

        return json.dumps({
            'model': self.model,
            'message': {'role': 'assistant', 'content': self._strip_code_fence(completion)},
            'done': True,
            'prompt_eval_count': prompt_tokens,
            'eval_count': completion_tokens,
        })

    def _generate_text(self, messages: list[BaseMessage]) -> tuple[str, int, int]:
        """Generate text synchronously (runs in thread pool).

        Returns:
            Tuple of (completion_text, prompt_tokens, completion_tokens)
        """
        prompt = self._format_messages_for_chat(messages)

        inputs = self._tokenizer(prompt, return_tensors="pt")
        prompt_tokens = inputs['input_ids'].shape[1]

        if hasattr(self._model, 'device'):
            inputs = {k: v.to(self._model.device) for k, v in inputs.items()}

        with torch.no_grad():
            outputs = self._model.generate(
                **inputs,
                max_new_tokens=self.max_new_tokens,
                temperature=self.temperature,
                top_p=self.top_p,
                do_sample=self.do_sample,
                pad_token_id=self._tokenizer.pad_token_id,
                eos_token_id=self._tokenizer.eos_token_id,
            )

        # Decode only the new tokens
        generated_tokens = outputs[0][prompt_tokens:]
        completion = self._tokenizer.decode(generated_tokens, skip_special_tokens=True)
        return completion.strip(), int(prompt_tokens), len(generated_tokens)

    @staticmethod
    def _with_schema_instruction(
        messages: list[BaseMessage], output_format: dict[str, Any]
    ) -> list[BaseMessage]:
        """Append the reply schema to the last message; local models have no schema-guided decoding."""
        instruction = (
            "\n\nReply with one JSON object only, matching this JSON schema:\n"
            f"{json.dumps(output_format, separators=(',', ':'))}"
        )
        modified = list(messages)
        if modified:
            last = modified[-1]
            modified[-1] = type(last)(content=last.content + instruction)
        else:
            modified.append(UserMessage(content=instruction.strip()))
        return modified

    @staticmethod
    def _strip_code_fence(completion: str) -> str:
        completion = completion.strip()
        if completion.startswith('```json'):
            completion = completion.replace('```json', '').replace('```', '').strip()
        elif completion.startswith('```'):
            completion = completion.replace('```', '').strip()
        return completion
