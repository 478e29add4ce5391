"""Temp file naming and best-effort cleanup."""

import logging
import secrets
from pathlib import Path

logger = logging.getLogger(__name__)


def new_temp_id() -> str:
    """Return a random identifier to embed in per-request temp filenames."""
    return secrets.token_hex(8)


def safe_unlink(path: Path) -> bool:
    """Delete a file, tolerating its absence.

    Never raises: cleanup must not fail a request that is already finishing.

    Returns:
        True if a file was deleted
    """
    try:
        path.unlink()
        logger.debug(f"Deleted temp file: {path}")
        return True
    except FileNotFoundError:
        logger.debug(f"Temp file already absent: {path}")
    except OSError as e:
        logger.warning(f"Error deleting temp file {path}: {e}")
    return False


def remove_temp_files(temp_dir: Path, temp_id: str) -> list[Path]:
    """Delete every file in temp_dir whose name contains temp_id.

    Catches the primary download as well as any side files yt-dlp leaves
    behind (``.part``, ``.ytdl``, per-format ``.fNNN`` files).

    Returns:
        Paths that were deleted
    """
    if not temp_id:
        return []
    try:
        candidates = [p for p in temp_dir.iterdir() if temp_id in p.name]
    except FileNotFoundError:
        return []
    except OSError as e:
        logger.warning(f"Could not list temp dir {temp_dir}: {e}")
        return []
    return [p for p in candidates if p.is_file() and safe_unlink(p)]
