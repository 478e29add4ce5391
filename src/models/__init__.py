# Data models for the clipper API
from .clip import (
    ClipCandidate,
    ClipRequest,
    HighlightParseResult,
    MaterializedSource,
    SourceKind,
    TrimResult,
)

__all__ = [
    "ClipCandidate",
    "ClipRequest",
    "HighlightParseResult",
    "MaterializedSource",
    "SourceKind",
    "TrimResult",
]
