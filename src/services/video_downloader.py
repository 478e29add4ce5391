"""Source materialization: make a clip's source video readable on local disk.

Three routes, picked by the request's source kind:
- local file in the mounted host-downloads directory (used in place)
- streaming-platform URL, fetched with the yt-dlp executable
- any other URL or a storage object (via a signed URL), fetched with httpx
"""

import logging
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx

from models.clip import ClipRequest, MaterializedSource, SourceKind
from services.media_process import MediaProcess
from services.source_resolver import is_streaming_url, resolve_local_path
from services.storage_service import SupabaseStorage
from utils.config import DEFAULT_YTDLP_FORMAT
from utils.errors import (
    ClipperError,
    ConfigurationError,
    DownloadFailedError,
    ExtractionStartFailedError,
)
from utils.tempfiles import new_temp_id

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


class SourceMaterializer:
    """Service that turns a ClipRequest into a MaterializedSource."""

    def __init__(
        self,
        temp_dir: str | Path,
        host_downloads_dir: str | Path,
        http_client: httpx.AsyncClient,
        storage: Optional[SupabaseStorage] = None,
        ytdlp_binary: str = "yt-dlp",
        ytdlp_format: str = DEFAULT_YTDLP_FORMAT,
        signed_url_ttl: int = 60,
    ):
        """Initialize the materializer.

        Args:
            temp_dir: Directory for per-request downloads
            host_downloads_dir: Operator-mounted directory for inputFileName
            http_client: Shared async HTTP client
            storage: Storage adapter for cloud objects
            ytdlp_binary: yt-dlp executable name or path
            ytdlp_format: yt-dlp format selector
            signed_url_ttl: Lifetime of signed URLs used for downloads
        """
        self.temp_dir = Path(temp_dir)
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.host_downloads_dir = Path(host_downloads_dir)
        self.http_client = http_client
        self.storage = storage
        self.ytdlp_binary = ytdlp_binary
        self.ytdlp_format = ytdlp_format
        self.signed_url_ttl = signed_url_ttl

        logger.info(f"Initialized source materializer with temp dir: {self.temp_dir}")

    def new_temp_source(self, temp_id: Optional[str] = None) -> MaterializedSource:
        """Reserve a temp path for a download (nothing is written yet)."""
        temp_id = temp_id or new_temp_id()
        return MaterializedSource(
            local_path=self.temp_dir / f"input_{temp_id}.tmp.mp4",
            is_temporary=True,
            temp_id=temp_id,
            temp_dir=self.temp_dir,
        )

    async def materialize(self, request: ClipRequest, temp_id: Optional[str] = None) -> MaterializedSource:
        """Ensure a local copy of the request's source exists.

        Args:
            request: Validated clip request
            temp_id: Identifier to embed in temp filenames (random if omitted)

        Returns:
            MaterializedSource; temporary unless the source is a local file

        Raises:
            ValidationError, NotFoundError: for bad local file names
            DownloadFailedError, SignedUrlError, ConfigurationError: for downloads
        """
        if request.source_kind is SourceKind.LOCAL_FILE:
            path = resolve_local_path(self.host_downloads_dir, request.identifier)
            logger.info(f"Confirmed local file access: {path}")
            return MaterializedSource(local_path=path, is_temporary=False)

        source = self.new_temp_source(temp_id)
        try:
            if request.source_kind is SourceKind.CLOUD_OBJECT:
                await self._download_storage_object(request.identifier, source.local_path)
            elif is_streaming_url(request.identifier):
                source.local_path = await self._download_with_ytdlp(request.identifier, source)
            else:
                await self._download_direct_url(request.identifier, source.local_path)
        except ClipperError:
            source.cleanup()
            raise
        except Exception as e:
            source.cleanup()
            raise DownloadFailedError(f"Download failed: {e}") from e

        return source

    async def _download_with_ytdlp(self, url: str, source: MaterializedSource) -> Path:
        """Download a streaming-platform URL with the yt-dlp executable.

        yt-dlp may or may not append ".mp4" to the output template, so both
        candidate paths are probed.
        """
        base_path = self.temp_dir / f"input_{source.temp_id}.tmp"
        args = [
            self.ytdlp_binary,
            "-f",
            self.ytdlp_format,
            "--no-playlist",
            "--newline",
            "-o",
            str(base_path),
            url,
        ]
        logger.info(f"Downloading streaming URL to {base_path} using yt-dlp")

        try:
            process = await MediaProcess.spawn(args, label="yt-dlp", stream_stdout=False)
        except ExtractionStartFailedError as e:
            raise DownloadFailedError(f"Failed to spawn yt-dlp for download: {e}") from e

        returncode = await process.wait()
        if returncode != 0:
            raise DownloadFailedError(f"yt-dlp download failed with code {returncode}")

        for candidate in (source.local_path, base_path):
            if candidate.is_file():
                logger.info(f"yt-dlp output: {candidate}")
                return candidate

        raise DownloadFailedError(
            f"yt-dlp download succeeded but output file {source.local_path} or {base_path} not found."
        )

    async def open_ytdlp_stream(self, url: str, chunk_size: int = DOWNLOAD_CHUNK_SIZE) -> MediaProcess:
        """Start yt-dlp writing the whole video to stdout (no temp file).

        Raises:
            DownloadFailedError: if yt-dlp cannot be started
        """
        args = [
            self.ytdlp_binary,
            "-f",
            self.ytdlp_format,
            "--no-playlist",
            "--newline",
            "-o",
            "-",
            url,
        ]
        try:
            return await MediaProcess.spawn(args, label="yt-dlp", chunk_size=chunk_size)
        except ExtractionStartFailedError as e:
            raise DownloadFailedError(f"Failed to start video download: {e}") from e

    async def _download_storage_object(self, key: str, output_path: Path) -> None:
        """Download a storage object through a short-lived signed URL."""
        if self.storage is None or not self.storage.configured:
            raise ConfigurationError("Supabase client not configured on server.")

        logger.info(f"Downloading storage object {key} to {output_path}")
        signed_url = await self.storage.create_signed_url(key, self.signed_url_ttl)
        try:
            await self._download_direct_url(signed_url, output_path, label="storage object")
        except DownloadFailedError as e:
            raise DownloadFailedError(f"Supabase download failed: {e}") from e

    async def _download_direct_url(self, url: str, output_path: Path, label: str = "direct URL") -> None:
        """Stream an HTTP GET response body into output_path.

        The partial file is removed on any failure.
        """
        logger.info(f"Downloading {label} to {output_path}")
        total_size = 0
        try:
            async with self.http_client.stream("GET", url, follow_redirects=True) as response:
                if response.status_code != 200:
                    raise DownloadFailedError(
                        f"Failed to download {label}: Status Code {response.status_code}"
                    )
                with open(output_path, "wb") as f:
                    async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                        f.write(chunk)
                        total_size += len(chunk)
        except DownloadFailedError:
            output_path.unlink(missing_ok=True)
            raise
        except httpx.HTTPError as e:
            output_path.unlink(missing_ok=True)
            raise DownloadFailedError(f"Failed to download {label}: {e}") from e
        except OSError as e:
            output_path.unlink(missing_ok=True)
            raise DownloadFailedError(f"Failed to write {label} to disk: {e}") from e

        size_mb = total_size / (1024 * 1024)
        logger.info(f"Downloaded: {output_path.name} ({size_mb:.1f} MB)")


async def iter_ytdlp_stream(process: MediaProcess) -> AsyncIterator[bytes]:
    """Yield yt-dlp's stdout, then fail if it exited nonzero.

    Raising after the body has started makes the server abort the
    connection, so the client sees a truncated download instead of a
    clean end of stream.

    Raises:
        DownloadFailedError: if yt-dlp exits with a nonzero code
    """
    total_size = 0
    async for chunk in process.iter_chunks():
        total_size += len(chunk)
        yield chunk

    returncode = await process.wait()
    if returncode != 0:
        logger.error(f"yt-dlp exited with code {returncode} after {total_size} bytes: {process.stderr_tail}")
        raise DownloadFailedError(f"yt-dlp download failed with code {returncode}")
    logger.info(f"yt-dlp stream finished ({total_size / (1024 * 1024):.1f} MB)")
