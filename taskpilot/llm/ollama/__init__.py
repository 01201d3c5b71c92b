"""
Ollama integration for taskpilot.
"""

from taskpilot.llm.ollama.chat import ChatOllama

__all__ = ['ChatOllama']
