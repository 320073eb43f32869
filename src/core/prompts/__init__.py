"""System prompts for AI-powered features.

Modules:
    chat: Persona prompt and fallback reply for the content chat.
    product_edit: Product-locked image edit instruction.
"""

from src.core.prompts.chat import FALLBACK_REPLY, SYSTEM_PROMPT
from src.core.prompts.product_edit import build_product_edit_prompt

__all__ = [
    "FALLBACK_REPLY",
    "SYSTEM_PROMPT",
    "build_product_edit_prompt",
]
