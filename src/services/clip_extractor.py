"""Clip extraction service using FFmpeg.

Two ways to cut a segment out of a materialized source:
- start(): stream-copy (no re-encode) into fragmented MP4 on stdout, so the
  HTTP response can start before ffmpeg finishes
- render_subtitled(): re-encode to a file with the transcription burned in,
  for clips that get uploaded to storage
"""

import logging
from pathlib import Path
from typing import List, Optional

from models.clip import format_seconds
from services.media_process import DEFAULT_CHUNK_SIZE, MediaProcess
from utils.errors import ExtractionFailedError

logger = logging.getLogger(__name__)

SUBTITLE_STYLE = (
    "FontName=Arial,FontSize=18,PrimaryColour=&HFFFFFF,OutlineColour=&H000000,"
    "BorderStyle=1,Outline=1,Shadow=0.5,MarginV=20"
)


def format_srt_timestamp(total_seconds: float) -> str:
    """Format seconds as an SRT timestamp (HH:MM:SS,mmm)."""
    millis_total = int(round(max(total_seconds, 0.0) * 1000))
    hours, remainder = divmod(millis_total, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    seconds, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


def build_srt(text: str, duration: float) -> str:
    """Single-cue SRT covering the whole clip."""
    return f"1\n{format_srt_timestamp(0)} --> {format_srt_timestamp(duration)}\n{text}\n\n"


def _escape_filter_path(path: Path) -> str:
    # ffmpeg filter arguments treat \ : ' as syntax
    return str(path).replace("\\", "/").replace(":", r"\:").replace("'", r"\'")


class ClipExtractor:
    """Service for cutting segments out of local videos with FFmpeg."""

    def __init__(
        self,
        ffmpeg_binary: str = "ffmpeg",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """Initialize clip extractor.

        Args:
            ffmpeg_binary: ffmpeg executable name or path
            chunk_size: Read size for streamed output
        """
        self.ffmpeg_binary = ffmpeg_binary
        self.chunk_size = chunk_size

    def build_stream_copy_args(self, source_path: Path, start: float, end: float) -> List[str]:
        """FFmpeg command for a stream-copied, stdout-streamed clip."""
        return [
            self.ffmpeg_binary,
            "-hide_banner",
            "-loglevel",
            "error",
            "-i",
            str(source_path),
            "-ss",
            format_seconds(start),  # Output seek, accurate to the packet
            "-to",
            format_seconds(end),
            "-c",
            "copy",  # No re-encode
            "-avoid_negative_ts",
            "make_zero",  # Seeking can leave negative timestamps
            "-movflags",
            "frag_keyframe+empty_moov",  # Playable before EOF
            "-f",
            "mp4",
            "pipe:1",
        ]

    async def start(self, source_path: Path, start: float, end: float) -> MediaProcess:
        """Spawn ffmpeg streaming the [start, end) segment to stdout.

        Raises:
            ExtractionStartFailedError: if ffmpeg cannot be started
        """
        args = self.build_stream_copy_args(source_path, start, end)
        return await MediaProcess.spawn(args, label="ffmpeg", chunk_size=self.chunk_size)

    def build_render_args(
        self,
        source_path: Path,
        output_path: Path,
        start: float,
        end: float,
        subtitles_path: Optional[Path] = None,
    ) -> List[str]:
        """FFmpeg command for a re-encoded clip written to output_path."""
        args = [
            self.ffmpeg_binary,
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-ss",
            format_seconds(start),  # Input seek; timestamps restart at 0
            "-i",
            str(source_path),
            "-t",
            format_seconds(end - start),
        ]
        if subtitles_path is not None:
            args += [
                "-vf",
                f"subtitles='{_escape_filter_path(subtitles_path)}':force_style='{SUBTITLE_STYLE}'",
            ]
        args += [
            "-c:v",
            "libx264",
            "-preset",
            "ultrafast",
            "-crf",
            "23",
            "-c:a",
            "aac",
            "-b:a",
            "128k",
            "-movflags",
            "+faststart",  # Web-optimized
            str(output_path),
        ]
        return args

    async def render_subtitled(
        self,
        source_path: Path,
        output_path: Path,
        start: float,
        end: float,
        transcription: Optional[str] = None,
    ) -> Path:
        """Re-encode a segment to output_path, burning in transcription.

        Subtitles are skipped when the transcription is empty or "N/A".

        Raises:
            ExtractionStartFailedError: if ffmpeg cannot be started
            ExtractionFailedError: if ffmpeg exits nonzero or writes nothing
        """
        subtitles_path = None
        if transcription and transcription.strip().upper() != "N/A":
            subtitles_path = output_path.with_suffix(".srt")
            subtitles_path.write_text(build_srt(transcription.strip(), end - start), encoding="utf-8")

        args = self.build_render_args(source_path, output_path, start, end, subtitles_path)
        process = await MediaProcess.spawn(args, label="ffmpeg", stream_stdout=False)
        returncode = await process.wait()

        if returncode != 0:
            raise ExtractionFailedError(
                f"FFmpeg clipping failed with code {returncode}: {process.stderr_tail}",
                returncode=returncode,
            )
        if not output_path.exists() or output_path.stat().st_size == 0:
            raise ExtractionFailedError("Clip file was not created", returncode=returncode)

        logger.info(f"Rendered clip: {output_path.name} ({end - start:.1f}s)")
        return output_path
