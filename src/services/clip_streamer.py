"""Clip streaming orchestration.

Ties materialization and extraction together for one GET /api/clip-video
request. The first chunk of ffmpeg output is read before the response is
committed, so failures that happen before any bytes exist can still be
reported as a JSON error with a proper status code.
"""

import logging
from typing import AsyncIterator, Optional

from models.clip import ClipRequest, MaterializedSource
from services.clip_extractor import ClipExtractor
from services.media_process import MediaProcess
from services.source_resolver import clip_filename
from services.video_downloader import SourceMaterializer
from utils.errors import ExtractionFailedError
from utils.tempfiles import new_temp_id

logger = logging.getLogger(__name__)


class ClipStream:
    """An in-flight clip: the running ffmpeg process plus its source.

    Owns the temp source; aclose() terminates ffmpeg if needed and deletes
    temp files. aclose() is safe to call more than once.
    """

    def __init__(
        self,
        request: ClipRequest,
        source: MaterializedSource,
        process: MediaProcess,
        filename: str,
        first_chunk: bytes,
    ):
        self.request = request
        self.source = source
        self.process = process
        self.filename = filename
        self.first_chunk = first_chunk
        self.bytes_sent = 0
        self.completed = False
        self._closed = False

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """Yield the clip bytes, starting with the primed first chunk.

        Raises:
            ExtractionFailedError: if ffmpeg exits nonzero after streaming began
        """
        if self.first_chunk:
            self.bytes_sent += len(self.first_chunk)
            yield self.first_chunk
        async for chunk in self.process.iter_chunks():
            self.bytes_sent += len(chunk)
            yield chunk

        returncode = await self.process.wait()
        if returncode != 0:
            logger.error(
                f"FFmpeg exited with code {returncode} after streaming {self.bytes_sent} bytes: "
                f"{self.process.stderr_tail}"
            )
            raise ExtractionFailedError(
                f"FFmpeg process exited with code {returncode}", returncode=returncode
            )
        self.completed = True
        logger.info(f"Clip streamed: {self.filename} ({self.bytes_sent} bytes)")

    async def aclose(self) -> None:
        """Stop ffmpeg (client gone or stream failed) and remove temp files."""
        if self._closed:
            return
        self._closed = True
        try:
            if self.process.running:
                logger.info(f"Stream for {self.filename} closed early; stopping ffmpeg")
                await self.process.terminate()
        finally:
            self.source.cleanup()


class ClipStreamer:
    """Service that opens clip streams for validated requests."""

    def __init__(self, materializer: SourceMaterializer, extractor: ClipExtractor):
        self.materializer = materializer
        self.extractor = extractor

    async def open(self, request: ClipRequest, temp_id: Optional[str] = None) -> ClipStream:
        """Materialize the source, start ffmpeg and read its first chunk.

        Args:
            request: Validated clip request
            temp_id: Identifier embedded in temp filenames (random if omitted)

        Returns:
            A ClipStream whose caller must eventually call aclose()

        Raises:
            ClipperError subclasses for every failure before the first byte;
            temp files are already cleaned up when this raises.
        """
        temp_id = temp_id or new_temp_id()
        logger.info(
            f"Clip request: {request.source_kind.value} {request.identifier} "
            f"[{request.start_time}s - {request.end_time}s]"
        )

        source = await self.materializer.materialize(request, temp_id)
        process = None
        try:
            process = await self.extractor.start(source.local_path, request.start_time, request.end_time)
            first_chunk = await process.read_chunk()
            if not first_chunk:
                returncode = await process.wait()
                if returncode != 0:
                    raise ExtractionFailedError(
                        f"FFmpeg process exited with code {returncode}: {process.stderr_tail}",
                        returncode=returncode,
                    )
                logger.warning(f"FFmpeg produced no output for {request.identifier}")
        except BaseException:
            if process is not None and process.running:
                await process.terminate()
            source.cleanup()
            raise

        return ClipStream(
            request=request,
            source=source,
            process=process,
            filename=clip_filename(request, temp_id),
            first_chunk=first_chunk,
        )
