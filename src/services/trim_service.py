"""Subtitled clip rendering and upload.

Renders one highlight to a file with its transcription burned in, uploads it
to the processed-clips bucket and returns a public URL for it.
"""

import logging
import re
import time
from typing import Optional

from models.clip import ClipRequest, TrimResult, format_seconds
from services.clip_extractor import ClipExtractor
from services.storage_service import SupabaseStorage
from services.video_downloader import SourceMaterializer
from utils.errors import StorageError
from utils.tempfiles import new_temp_id, remove_temp_files

logger = logging.getLogger(__name__)

DESCRIPTION_SLUG_LENGTH = 30


def clip_object_key(description: str, start: float, end: float) -> str:
    """Storage key for a rendered clip: clip_<desc>_<start>_<end>_<ms>.mp4."""
    slug = re.sub(r"[^a-zA-Z0-9]", "_", description or "")[:DESCRIPTION_SLUG_LENGTH] or "clip"
    millis = int(time.time() * 1000)
    return f"clip_{slug}_{format_seconds(start)}_{format_seconds(end)}_{millis}.mp4"


class TrimService:
    """Service that renders and publishes subtitled highlight clips."""

    def __init__(
        self,
        materializer: SourceMaterializer,
        extractor: ClipExtractor,
        storage: SupabaseStorage,
    ):
        self.materializer = materializer
        self.extractor = extractor
        self.storage = storage

    async def trim(
        self,
        request: ClipRequest,
        description: str,
        transcription: Optional[str] = None,
    ) -> TrimResult:
        """Render request's segment with subtitles and upload it.

        Raises:
            ClipperError subclasses from materialization, rendering or upload
        """
        temp_id = new_temp_id()
        temp_dir = self.materializer.temp_dir
        output_path = temp_dir / f"output_{temp_id}.mp4"
        logger.info(
            f"Trimming {request.identifier} [{request.start_time}s - {request.end_time}s] to {output_path.name}"
        )

        source = await self.materializer.materialize(request, temp_id)
        try:
            await self.extractor.render_subtitled(
                source.local_path,
                output_path,
                request.start_time,
                request.end_time,
                transcription=transcription,
            )

            key = clip_object_key(description, request.start_time, request.end_time)
            await self.storage.upload_bytes(
                key,
                output_path.read_bytes(),
                content_type="video/mp4",
                bucket=self.storage.clips_bucket,
                upsert=True,
            )

            clip_url = self.storage.get_public_url(key, bucket=self.storage.clips_bucket)
            if not clip_url:
                raise StorageError("Failed to get public URL for the trimmed clip.")
        finally:
            source.cleanup()
            # Output and subtitle files are not part of the source
            remove_temp_files(temp_dir, temp_id)

        logger.info(f"Trimmed clip published: {key}")
        return TrimResult(
            clip_url=clip_url,
            storage_path=key,
            start=request.start_time,
            end=request.end_time,
            description=description,
            transcription=transcription or "N/A",
        )
