"""Unit tests for SourceMaterializer."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from models.clip import ClipRequest, SourceKind
from services.media_process import MediaProcess
from services.video_downloader import SourceMaterializer, iter_ytdlp_stream
from utils.errors import (
    ConfigurationError,
    DownloadFailedError,
    ExtractionStartFailedError,
    NotFoundError,
    SignedUrlError,
)


def _materializer(work_dir, downloads_dir, handler=None, storage=None):
    handler = handler or (lambda request: httpx.Response(200, content=b"video-bytes"))
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SourceMaterializer(
        temp_dir=work_dir,
        host_downloads_dir=downloads_dir,
        http_client=client,
        storage=storage,
    )


def _request(kind, identifier):
    return ClipRequest(kind, identifier, 0.0, 5.0)


@pytest.mark.unit
class TestLocalFiles:
    @pytest.mark.asyncio
    async def test_local_file_used_in_place(self, work_dir, downloads_dir):
        (downloads_dir / "clip_source.mp4").write_bytes(b"data")
        materializer = _materializer(work_dir, downloads_dir)

        source = await materializer.materialize(_request(SourceKind.LOCAL_FILE, "clip_source.mp4"))

        assert source.local_path == (downloads_dir / "clip_source.mp4").resolve()
        assert not source.is_temporary
        assert list(work_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_missing_local_file(self, work_dir, downloads_dir):
        materializer = _materializer(work_dir, downloads_dir)
        with pytest.raises(NotFoundError):
            await materializer.materialize(_request(SourceKind.LOCAL_FILE, "missing.mp4"))


@pytest.mark.unit
class TestDirectDownloads:
    @pytest.mark.asyncio
    async def test_downloads_to_temp_file(self, work_dir, downloads_dir):
        materializer = _materializer(work_dir, downloads_dir)

        source = await materializer.materialize(
            _request(SourceKind.REMOTE_URL, "https://cdn.example.com/a.mp4"), temp_id="abc123"
        )

        assert source.is_temporary
        assert source.local_path == work_dir / "input_abc123.tmp.mp4"
        assert source.local_path.read_bytes() == b"video-bytes"

    @pytest.mark.asyncio
    async def test_follows_redirects(self, work_dir, downloads_dir):
        def handler(request):
            if request.url.path == "/old.mp4":
                return httpx.Response(302, headers={"Location": "https://cdn.example.com/new.mp4"})
            return httpx.Response(200, content=b"moved")

        materializer = _materializer(work_dir, downloads_dir, handler)
        source = await materializer.materialize(_request(SourceKind.REMOTE_URL, "https://cdn.example.com/old.mp4"))
        assert source.local_path.read_bytes() == b"moved"

    @pytest.mark.asyncio
    async def test_http_error_leaves_no_temp_file(self, work_dir, downloads_dir):
        materializer = _materializer(work_dir, downloads_dir, lambda request: httpx.Response(404))

        with pytest.raises(DownloadFailedError, match="Status Code 404"):
            await materializer.materialize(_request(SourceKind.REMOTE_URL, "https://cdn.example.com/gone.mp4"))

        assert list(work_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_network_error_leaves_no_temp_file(self, work_dir, downloads_dir):
        def handler(request):
            raise httpx.ConnectError("Name or service not known", request=request)

        materializer = _materializer(work_dir, downloads_dir, handler)

        with pytest.raises(DownloadFailedError, match="Name or service not known"):
            await materializer.materialize(_request(SourceKind.REMOTE_URL, "https://nope.invalid/a.mp4"))

        assert list(work_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_distinct_temp_names(self, work_dir, downloads_dir):
        materializer = _materializer(work_dir, downloads_dir)
        request = _request(SourceKind.REMOTE_URL, "https://cdn.example.com/a.mp4")

        first = await materializer.materialize(request)
        second = await materializer.materialize(request)

        assert first.local_path != second.local_path
        assert first.temp_id != second.temp_id


@pytest.mark.unit
class TestStorageDownloads:
    @pytest.mark.asyncio
    async def test_downloads_via_signed_url(self, work_dir, downloads_dir, mock_storage):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, content=b"from-storage")

        materializer = _materializer(work_dir, downloads_dir, handler, storage=mock_storage)
        source = await materializer.materialize(_request(SourceKind.CLOUD_OBJECT, "uploads/a.mp4"))

        mock_storage.create_signed_url.assert_awaited_once_with("uploads/a.mp4", 60)
        assert seen == ["https://storage.example.com/signed/video.mp4?token=abc"]
        assert source.local_path.read_bytes() == b"from-storage"

    @pytest.mark.asyncio
    async def test_signed_url_failure(self, work_dir, downloads_dir, mock_storage):
        mock_storage.create_signed_url.side_effect = SignedUrlError("Object not found")
        materializer = _materializer(work_dir, downloads_dir, storage=mock_storage)

        with pytest.raises(SignedUrlError):
            await materializer.materialize(_request(SourceKind.CLOUD_OBJECT, "uploads/missing.mp4"))
        assert list(work_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_storage_not_configured(self, work_dir, downloads_dir):
        materializer = _materializer(work_dir, downloads_dir, storage=None)
        with pytest.raises(ConfigurationError):
            await materializer.materialize(_request(SourceKind.CLOUD_OBJECT, "uploads/a.mp4"))


@pytest.mark.unit
class TestYtDlpDownloads:
    URL = "https://www.youtube.com/watch?v=abc123"

    @pytest.mark.asyncio
    async def test_probes_mp4_output(self, work_dir, downloads_dir, fake_process):
        process = fake_process(
            returncode=0, on_wait=lambda: (work_dir / "input_abc.tmp.mp4").write_bytes(b"yt")
        )
        materializer = _materializer(work_dir, downloads_dir)

        with patch.object(MediaProcess, "spawn", AsyncMock(return_value=process)) as spawn:
            source = await materializer.materialize(_request(SourceKind.REMOTE_URL, self.URL), temp_id="abc")

        args = spawn.call_args.args[0]
        assert args[0] == "yt-dlp"
        assert "--no-playlist" in args
        assert args[args.index("-o") + 1] == str(work_dir / "input_abc.tmp")
        assert args[-1] == self.URL
        assert source.local_path == work_dir / "input_abc.tmp.mp4"

    @pytest.mark.asyncio
    async def test_probes_bare_output(self, work_dir, downloads_dir, fake_process):
        process = fake_process(returncode=0, on_wait=lambda: (work_dir / "input_abc.tmp").write_bytes(b"yt"))
        materializer = _materializer(work_dir, downloads_dir)

        with patch.object(MediaProcess, "spawn", AsyncMock(return_value=process)):
            source = await materializer.materialize(_request(SourceKind.REMOTE_URL, self.URL), temp_id="abc")

        assert source.local_path == work_dir / "input_abc.tmp"

    @pytest.mark.asyncio
    async def test_nonzero_exit_cleans_partial_files(self, work_dir, downloads_dir, fake_process):
        process = fake_process(
            returncode=1, on_wait=lambda: (work_dir / "input_abc.tmp.mp4.part").write_bytes(b"partial")
        )
        materializer = _materializer(work_dir, downloads_dir)

        with patch.object(MediaProcess, "spawn", AsyncMock(return_value=process)):
            with pytest.raises(DownloadFailedError, match="failed with code 1"):
                await materializer.materialize(_request(SourceKind.REMOTE_URL, self.URL), temp_id="abc")

        assert list(work_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_missing_output(self, work_dir, downloads_dir, fake_process):
        materializer = _materializer(work_dir, downloads_dir)
        with patch.object(MediaProcess, "spawn", AsyncMock(return_value=fake_process(returncode=0))):
            with pytest.raises(DownloadFailedError, match="not found"):
                await materializer.materialize(_request(SourceKind.REMOTE_URL, self.URL))

    @pytest.mark.asyncio
    async def test_spawn_failure(self, work_dir, downloads_dir):
        materializer = _materializer(work_dir, downloads_dir)
        spawn = AsyncMock(side_effect=ExtractionStartFailedError("Failed to start yt-dlp process"))
        with patch.object(MediaProcess, "spawn", spawn):
            with pytest.raises(DownloadFailedError, match="Failed to spawn yt-dlp"):
                await materializer.materialize(_request(SourceKind.REMOTE_URL, self.URL))

    @pytest.mark.asyncio
    async def test_open_ytdlp_stream_writes_to_stdout(self, work_dir, downloads_dir, fake_process):
        materializer = _materializer(work_dir, downloads_dir)
        with patch.object(MediaProcess, "spawn", AsyncMock(return_value=fake_process([b"a"]))) as spawn:
            await materializer.open_ytdlp_stream(self.URL)
        args = spawn.call_args.args[0]
        assert args[args.index("-o") + 1] == "-"


@pytest.mark.unit
class TestYtDlpStream:
    @pytest.mark.asyncio
    async def test_yields_stdout(self, fake_process):
        process = fake_process([b"full-", b"video"])
        data = b"".join([chunk async for chunk in iter_ytdlp_stream(process)])
        assert data == b"full-video"

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises_after_body(self, fake_process):
        process = fake_process([b"partial"], returncode=1)
        received = []
        with pytest.raises(DownloadFailedError, match="code 1"):
            async for chunk in iter_ytdlp_stream(process):
                received.append(chunk)
        assert received == [b"partial"]
