"""Generation client implementations.

This module contains concrete implementations of the AIProvider and
ImageProvider protocols defined in src/core/providers.py.
"""

from src.providers.anthropic_provider import AnthropicProvider
from src.providers.fal_provider import FalAIError, FalAIProvider

__all__ = [
    "AnthropicProvider",
    "FalAIError",
    "FalAIProvider",
]
