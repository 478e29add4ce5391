"""Filename and identifier helpers shared by the clip and download endpoints."""

import re
import time
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlparse

from models.clip import ClipRequest, SourceKind, format_seconds
from utils.errors import NotFoundError, ValidationError

STREAMING_HOST_MARKERS = ("youtube.com/", "youtu.be/")

YOUTUBE_ID_PATTERN = re.compile(r"[?&]v=([^&]+)|youtu\.be/([^?&]+)")

MIME_TYPES_BY_EXTENSION = {
    ".mov": "video/quicktime",
    ".mpeg": "video/mpeg",
    ".mpg": "video/mpeg",
    ".avi": "video/x-msvideo",
    ".webm": "video/webm",
    ".mp4": "video/mp4",
}


def is_streaming_url(url: str) -> bool:
    """True for URLs that need yt-dlp rather than a plain GET."""
    lowered = url.lower()
    return any(marker in lowered for marker in STREAMING_HOST_MARKERS)


def extract_youtube_id(url: str) -> Optional[str]:
    """Extract the video id from a watch or youtu.be URL."""
    match = YOUTUBE_ID_PATTERN.search(url)
    if not match:
        return None
    return match.group(1) or match.group(2)


def sanitize_filename(filename: str) -> str:
    """Reduce a name to characters safe for headers and filesystems."""
    filename = re.sub(r"[^a-zA-Z0-9_.-]", "_", filename)
    return re.sub(r"_{2,}", "_", filename)


def is_http_url(value: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def download_filename(identifier: str, source_type: str) -> str:
    """Suggest an attachment filename for the original (untrimmed) video."""
    millis = int(time.time() * 1000)
    filename = f"video_download_{millis}.mp4"

    if source_type == SourceKind.CLOUD_OBJECT.value:
        filename = identifier.rstrip("/").split("/")[-1] or f"video_{millis}.mp4"
    elif source_type == SourceKind.REMOTE_URL.value:
        if is_streaming_url(identifier):
            video_id = extract_youtube_id(identifier)
            filename = f"youtube_{video_id or millis}.mp4"
        else:
            last_part = urlparse(identifier).path.split("/")[-1]
            if last_part and "." in last_part:
                filename = unquote(last_part)
            else:
                filename = f"external_video_{millis}.mp4"

    return sanitize_filename(filename)


def clip_filename(request: ClipRequest, temp_id: str) -> str:
    """Name reported in X-Clip-Filename: clip_<base>_<start>-<end>.mp4."""
    if request.source_kind is SourceKind.LOCAL_FILE:
        base = PurePosixPath(request.identifier.replace("\\", "/")).stem or "video"
    else:
        base = temp_id or "video"
    start = format_seconds(request.start_time)
    end = format_seconds(request.end_time)
    return f"clip_{sanitize_filename(base)}_{start}-{end}.mp4"


def resolve_local_path(base_dir: Path, input_file_name: str) -> Path:
    """Resolve inputFileName inside the mounted host-downloads directory.

    Raises:
        ValidationError: if the name escapes base_dir
        NotFoundError: if the file is absent or unreadable
    """
    if "\x00" in input_file_name:
        raise ValidationError(f"Invalid inputFileName: {input_file_name!r}")
    base = Path(base_dir).resolve()
    try:
        candidate = (base / input_file_name).resolve()
    except (OSError, ValueError):
        raise ValidationError(f"Invalid inputFileName: {input_file_name!r}") from None
    if candidate != base and base not in candidate.parents:
        raise ValidationError(f"inputFileName must stay inside the downloads directory: {input_file_name}")
    if not candidate.is_file():
        raise NotFoundError(
            f"Local file {input_file_name} not found or not accessible in the mapped directory."
        )
    try:
        with candidate.open("rb"):
            pass
    except OSError:
        raise NotFoundError(
            f"Local file {input_file_name} not found or not accessible in the mapped directory."
        ) from None
    return candidate


def guess_video_mime_type(uri: str) -> str:
    """Pick the MIME type Gemini should be told about, from the URL path."""
    try:
        path = urlparse(uri).path.lower()
    except ValueError:
        return "video/mp4"
    for extension, mime_type in MIME_TYPES_BY_EXTENSION.items():
        if path.endswith(extension):
            return mime_type
    return "video/mp4"
