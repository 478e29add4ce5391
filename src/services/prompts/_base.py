"""Base utilities for prompts module.

Contains shared helper functions used across prompt modules.
"""

import re

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*")


def strip_markdown_code_blocks(text: str) -> str:
    """Strip markdown code blocks from AI response text.

    Handles ```json, ``` and any other language tag on the opening fence.

    Args:
        text: Raw text that may contain markdown code blocks

    Returns:
        Cleaned text with markdown code blocks removed
    """
    text = text.strip()
    text = _FENCE_OPEN.sub("", text, count=1)
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def truncate_for_log(text: str, limit: int = 500) -> str:
    """Shorten a model response for error messages."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
