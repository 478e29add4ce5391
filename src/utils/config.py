"""Configuration loading and validation for the clipper API."""

import os
import shutil
from pathlib import Path

from dotenv import load_dotenv

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_YTDLP_FORMAT = "bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best"


def _first_env(*names: str) -> str | None:
    """Return the first non-empty environment variable among ``names``."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def load_config() -> dict:
    """Load configuration from environment variables."""

    # Helper function to resolve paths relative to project root
    def resolve_path(path: str | None, default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    origins = os.getenv("CORS_ALLOWED_ORIGINS", "*")

    config = {
        # Storage provider (Supabase). The VITE_* names are what the frontend
        # build already exports, so they are accepted as fallbacks.
        "supabase_url": _first_env("SUPABASE_URL", "VITE_SUPABASE_URL"),
        "supabase_key": _first_env(
            "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_KEY", "VITE_SUPABASE_ANON_KEY"
        ),
        "raw_videos_bucket": os.getenv("RAW_VIDEOS_BUCKET", "raw-videos"),
        "processed_clips_bucket": os.getenv("PROCESSED_CLIPS_BUCKET", "processed-clips"),
        "raw_bucket_public": os.getenv("RAW_VIDEOS_BUCKET_PUBLIC", "false").lower() == "true",
        # AI analysis
        "gemini_api_key": os.getenv("GEMINI_API_KEY"),
        "gemini_model": os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        # Filesystem
        "host_downloads_dir": os.getenv("HOST_DOWNLOADS_PATH", "/data/host_downloads"),
        "temp_dir": resolve_path(os.getenv("CLIPPER_TEMP_DIR"), "tmp"),
        # External binaries
        "ffmpeg_binary": os.getenv("FFMPEG_BINARY", "ffmpeg"),
        "ytdlp_binary": os.getenv("YTDLP_BINARY", "yt-dlp"),
        "ytdlp_format": os.getenv("YTDLP_FORMAT", DEFAULT_YTDLP_FORMAT),
        # Signed URL lifetimes (seconds)
        "clip_signed_url_ttl": int(os.getenv("CLIP_SIGNED_URL_TTL", "60")),
        "download_signed_url_ttl": int(os.getenv("DOWNLOAD_SIGNED_URL_TTL", "300")),
        "analysis_signed_url_ttl": int(os.getenv("ANALYSIS_SIGNED_URL_TTL", "3600")),
        # Network / streaming
        "download_timeout_seconds": float(os.getenv("DOWNLOAD_TIMEOUT_SECONDS", "300")),
        "stream_chunk_size": int(os.getenv("STREAM_CHUNK_SIZE", "65536")),
        "cors_allowed_origins": [o.strip() for o in origins.split(",") if o.strip()],
        # Server
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": os.getenv("LOG_JSON", "false").lower() == "true",
        "port": int(os.getenv("PORT", "3000")),
    }

    return config


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of problems.

    None of these are fatal: the affected endpoints fail with a
    ConfigurationError when they are called.
    """
    errors = []

    if not config.get("supabase_url") or not config.get("supabase_key"):
        errors.append(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or VITE_SUPABASE_URL / "
            "VITE_SUPABASE_ANON_KEY) are required for storage-backed sources"
        )

    if not config.get("gemini_api_key"):
        errors.append("GEMINI_API_KEY is required for video analysis")

    temp_dir = Path(config["temp_dir"])
    try:
        temp_dir.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        errors.append(f"Cannot create temp folder {temp_dir}: {e}")

    if not Path(config["host_downloads_dir"]).is_dir():
        errors.append(
            f"Host downloads folder not mounted: {config['host_downloads_dir']} "
            "(inputFileName requests will return 404)"
        )

    for key in ("ffmpeg_binary", "ytdlp_binary"):
        if shutil.which(config[key]) is None:
            errors.append(f"{config[key]} not found on PATH")

    return errors


def get_supported_video_formats() -> list[str]:
    """Return list of supported video file extensions."""
    return [".mp4", ".avi", ".mov", ".mkv", ".webm", ".m4v", ".mpeg", ".mpg"]
