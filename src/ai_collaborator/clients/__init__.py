"""Completion backend implementations.

All backends implement the CompletionBackend interface and raise
ClientError subclasses on failure.
"""

from .base import CompletionBackend, with_retry
from .ollama import OllamaBackend
from .openai import OpenAIBackend
from .openai_compat import OpenAICompatibleBackend

__all__ = [
    "CompletionBackend",
    "OpenAICompatibleBackend",
    "OllamaBackend",
    "OpenAIBackend",
    "with_retry",
]
