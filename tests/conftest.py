"""Shared pytest fixtures for clipper tests."""

import sys
import tempfile
from pathlib import Path
from typing import Dict, Generator, Iterable, Optional
from unittest.mock import AsyncMock, Mock

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


class FakeMediaProcess:
    """Stands in for services.media_process.MediaProcess.

    Yields the given stdout chunks, then exits with returncode.
    """

    def __init__(self, chunks: Iterable[bytes] = (), returncode: int = 0, on_wait=None):
        self._chunks = list(chunks)
        self._final_returncode = returncode
        self._on_wait = on_wait
        self.returncode: Optional[int] = None
        self.terminated = False
        self.stderr_tail = "fake stderr"
        self.pid = 4242

    @property
    def running(self) -> bool:
        return self.returncode is None

    async def read_chunk(self) -> bytes:
        if self._chunks:
            return self._chunks.pop(0)
        return b""

    async def iter_chunks(self):
        while True:
            chunk = await self.read_chunk()
            if not chunk:
                return
            yield chunk

    async def wait(self) -> int:
        if self.returncode is None:
            if self._on_wait is not None:
                self._on_wait()
            self.returncode = self._final_returncode
        return self.returncode

    async def terminate(self) -> int:
        if self.returncode is None:
            self.terminated = True
            self.returncode = -15
        return self.returncode


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def downloads_dir(temp_dir: Path) -> Path:
    """Stand-in for the operator-mounted host downloads directory."""
    path = temp_dir / "host_downloads"
    path.mkdir()
    return path


@pytest.fixture
def work_dir(temp_dir: Path) -> Path:
    """Per-request temp directory."""
    path = temp_dir / "tmp"
    path.mkdir()
    return path


@pytest.fixture
def sample_config(downloads_dir: Path, work_dir: Path) -> Dict:
    """Sample configuration for testing."""
    return {
        "supabase_url": None,
        "supabase_key": None,
        "raw_videos_bucket": "raw-videos",
        "processed_clips_bucket": "processed-clips",
        "raw_bucket_public": False,
        "gemini_api_key": None,
        "gemini_model": "gemini-2.5-flash",
        "host_downloads_dir": str(downloads_dir),
        "temp_dir": str(work_dir),
        "ffmpeg_binary": "ffmpeg",
        "ytdlp_binary": "yt-dlp",
        "ytdlp_format": "bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best",
        "clip_signed_url_ttl": 60,
        "download_signed_url_ttl": 300,
        "analysis_signed_url_ttl": 3600,
        "download_timeout_seconds": 30.0,
        "stream_chunk_size": 65536,
        "cors_allowed_origins": ["*"],
        "log_level": "INFO",
        "log_json": False,
        "port": 3000,
    }


@pytest.fixture
def fake_process():
    """Factory for FakeMediaProcess instances."""
    return FakeMediaProcess


@pytest.fixture
def mock_storage():
    """Mock SupabaseStorage for testing."""
    mock = Mock()
    mock.configured = True
    mock.raw_bucket = "raw-videos"
    mock.clips_bucket = "processed-clips"
    mock.create_signed_url = AsyncMock(return_value="https://storage.example.com/signed/video.mp4?token=abc")
    mock.resolve_readable_url = AsyncMock(return_value="https://storage.example.com/signed/video.mp4?token=abc")
    mock.upload_bytes = AsyncMock(side_effect=lambda path, *args, **kwargs: path)
    mock.get_public_url = Mock(return_value="https://storage.example.com/public/processed-clips/clip.mp4")
    return mock


@pytest.fixture
def mock_ai_service():
    """Mock AIService for testing."""
    mock = Mock()
    mock.configured = True
    mock.find_highlights = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def sample_ai_response() -> str:
    """Gemini reply wrapped in a markdown fence, as the model tends to send it."""
    return """```json
[
  {"startTime": 12, "endTime": 41, "description": "The host reveals the surprise ending", "transcription": "I did not see that coming"},
  {"startTime": 95.5, "endTime": 120, "description": "Audience reaction", "transcription": "N/A"}
]
```"""
