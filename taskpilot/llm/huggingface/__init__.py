"""
Hugging Face transformers integration for taskpilot.
"""

from taskpilot.llm.huggingface.chat import ChatHuggingFace

__all__ = ['ChatHuggingFace']
