"""Clip-related data models for highlight extraction."""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from utils.errors import ValidationError
from utils.tempfiles import remove_temp_files

logger = logging.getLogger(__name__)


class SourceKind(str, Enum):
    """Where a clip's source video lives."""

    LOCAL_FILE = "local_file"
    REMOTE_URL = "external_url"
    CLOUD_OBJECT = "supabase"

    @classmethod
    def from_source_type(cls, source_type: str) -> "SourceKind":
        """Map the ``sourceType`` wire value onto a downloadable source kind."""
        if source_type == cls.REMOTE_URL.value:
            return cls.REMOTE_URL
        if source_type == cls.CLOUD_OBJECT.value:
            return cls.CLOUD_OBJECT
        raise ValidationError(f"Invalid sourceType: {source_type}")


def format_seconds(value: float) -> str:
    """Render an offset the way it appears in filenames: 10, 10.5."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _parse_offset(raw) -> Optional[float]:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True)
class ClipRequest:
    """A validated request for one clip. Never mutated after creation."""

    source_kind: SourceKind
    identifier: str  # Local file name, URL, or storage key
    start_time: float
    end_time: float

    @property
    def duration(self) -> float:
        """Clip duration in seconds."""
        return self.end_time - self.start_time

    @classmethod
    def from_query(
        cls,
        identifier: Optional[str],
        source_type: Optional[str],
        start_time: Optional[str],
        end_time: Optional[str],
        input_file_name: Optional[str] = None,
    ) -> "ClipRequest":
        """Build a request from raw query parameters.

        ``inputFileName`` takes precedence when it is supplied together with
        ``identifier``/``sourceType``.

        Raises:
            ValidationError: on any missing or invalid parameter
        """
        if start_time is None or end_time is None:
            raise ValidationError("Missing required query parameters: startTime, endTime")
        if not input_file_name and (not identifier or not source_type):
            raise ValidationError(
                "Missing required query parameters: provide inputFileName OR identifier and sourceType"
            )

        start = _parse_offset(start_time)
        end = _parse_offset(end_time)
        if start is None or end is None or start < 0 or end <= start:
            raise ValidationError("Invalid startTime or endTime parameters.")

        if input_file_name:
            if identifier or source_type:
                logger.warning(
                    f"Both inputFileName and identifier/sourceType supplied; using inputFileName={input_file_name}"
                )
            return cls(SourceKind.LOCAL_FILE, input_file_name, start, end)

        try:
            kind = SourceKind.from_source_type(source_type)
        except ValidationError:
            raise ValidationError(
                f"Invalid sourceType: {source_type} when inputFileName is not provided."
            ) from None
        return cls(kind, identifier, start, end)


@dataclass
class MaterializedSource:
    """A local, directly readable copy of a clip's source video.

    Temporary copies are owned by the request that created them; cleanup()
    removes them and may be called any number of times.
    """

    local_path: Path
    is_temporary: bool
    temp_id: str = ""
    temp_dir: Optional[Path] = None
    _cleaned: bool = field(default=False, repr=False)

    def cleanup(self) -> List[Path]:
        """Delete every temp file produced for this source.

        Returns:
            Paths deleted by this call (empty on repeat calls)
        """
        if self._cleaned or not self.is_temporary:
            return []
        self._cleaned = True
        removed = remove_temp_files(self.temp_dir or self.local_path.parent, self.temp_id)
        if removed:
            logger.info(f"Cleaned up {len(removed)} temp file(s) for {self.temp_id}")
        return removed


def _as_number(value: float):
    return int(value) if float(value).is_integer() else value


@dataclass
class ClipCandidate:
    """A highlight proposed by the AI service."""

    start_time: float  # Start time in seconds
    end_time: float  # End time in seconds
    description: str  # One-sentence summary for a post title
    transcription: str = "N/A"  # Key quote from the segment, or "N/A"

    @property
    def duration(self) -> float:
        """Calculate segment duration in seconds."""
        return self.end_time - self.start_time

    def to_dict(self) -> dict:
        """Convert to the camelCase shape the frontend consumes."""
        return {
            "startTime": _as_number(self.start_time),
            "endTime": _as_number(self.end_time),
            "description": self.description,
            "transcription": self.transcription,
        }


@dataclass
class HighlightParseResult:
    """Outcome of parsing the AI response text: clips, or a reason."""

    ok: bool
    clips: List[ClipCandidate] = field(default_factory=list)
    error: Optional[str] = None
    dropped: int = 0  # Elements rejected by the shape check

    @classmethod
    def success(cls, clips: List[ClipCandidate], dropped: int = 0) -> "HighlightParseResult":
        return cls(ok=True, clips=clips, dropped=dropped)

    @classmethod
    def failure(cls, error: str) -> "HighlightParseResult":
        return cls(ok=False, error=error)


@dataclass
class TrimResult:
    """A rendered clip uploaded to the processed-clips bucket."""

    clip_url: str
    storage_path: str
    start: float
    end: float
    description: str
    transcription: str

    def to_dict(self) -> dict:
        return {
            "clipUrl": self.clip_url,
            "description": self.description,
            "transcription": self.transcription,
            "start": _as_number(self.start),
            "end": _as_number(self.end),
            "message": "Clip trimmed and subtitled successfully.",
        }
