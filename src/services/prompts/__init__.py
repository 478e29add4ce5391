"""Prompts module - centralized prompt templates for AI services.

Re-exports all prompt constants and utilities for easy importing:
    from services.prompts import PROMPT_VERSIONS, strip_markdown_code_blocks
    from services.prompts import HIGHLIGHT_FINDER_V1
"""

from services.prompts._base import strip_markdown_code_blocks, truncate_for_log
from services.prompts.highlights import HIGHLIGHT_FINDER_V1

# Increment when a prompt changes so logs show which contract produced a response
PROMPT_VERSIONS = {
    "find_highlights": "v1",
}

__all__ = [
    # Utilities
    "strip_markdown_code_blocks",
    "truncate_for_log",
    # Version tracking
    "PROMPT_VERSIONS",
    # Highlight prompts
    "HIGHLIGHT_FINDER_V1",
]
