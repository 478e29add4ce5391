"""Clip and download routes.

GET /api/clip-video streams a trimmed MP4 straight from ffmpeg's stdout.
GET /api/download-video hands back the original, untrimmed video.
"""

import logging

from api.dependencies import get_clip_streamer, get_config, get_materializer, get_storage
from api.schemas import ErrorResponse
from api.streaming import ProcessStreamResponse
from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from models.clip import ClipRequest, SourceKind
from services.clip_streamer import ClipStreamer
from services.source_resolver import download_filename, is_http_url, is_streaming_url
from services.storage_service import SupabaseStorage
from services.video_downloader import SourceMaterializer, iter_ytdlp_stream
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Clips"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or invalid parameters"},
    404: {"model": ErrorResponse, "description": "Local file not found"},
    500: {"model": ErrorResponse, "description": "Download or extraction failed"},
}


@router.get(
    "/api/clip-video",
    summary="Stream a clip",
    description=(
        "Cut [startTime, endTime) out of a local file, a remote URL or a storage "
        "object and stream it as fragmented MP4. The suggested filename is sent "
        "in the X-Clip-Filename header."
    ),
    responses={200: {"content": {"video/mp4": {}}}, **ERROR_RESPONSES},
)
async def clip_video(
    identifier: str | None = Query(None, description="Remote URL or storage key"),
    source_type: str | None = Query(None, alias="sourceType", description="external_url or supabase"),
    start_time: str | None = Query(None, alias="startTime", description="Clip start in seconds"),
    end_time: str | None = Query(None, alias="endTime", description="Clip end in seconds"),
    input_file_name: str | None = Query(
        None, alias="inputFileName", description="File in the mounted downloads directory"
    ),
    streamer: ClipStreamer = Depends(get_clip_streamer),
) -> ProcessStreamResponse:
    """Stream a clip.

    Validation happens before any download or subprocess is started.
    """
    request = ClipRequest.from_query(
        identifier=identifier,
        source_type=source_type,
        start_time=start_time,
        end_time=end_time,
        input_file_name=input_file_name,
    )
    clip = await streamer.open(request)
    return ProcessStreamResponse.for_clip(clip)


@router.get(
    "/api/download-video",
    summary="Download the original video",
    description=(
        "Streaming-platform URLs are piped through yt-dlp as an attachment; "
        "other URLs and storage objects are answered with a redirect."
    ),
    responses={
        200: {"content": {"video/mp4": {}}},
        307: {"description": "Redirect to the video"},
        **ERROR_RESPONSES,
    },
)
async def download_video(
    source_type: str | None = Query(None, alias="sourceType"),
    identifier: str | None = Query(None),
    config: dict = Depends(get_config),
    storage: SupabaseStorage = Depends(get_storage),
    materializer: SourceMaterializer = Depends(get_materializer),
):
    """Download or redirect to the full source video."""
    if not source_type or not identifier:
        raise ValidationError("Missing sourceType or identifier parameter.")

    filename = download_filename(identifier, source_type)
    logger.info(f"Download request: {source_type} {identifier} -> {filename}")

    if source_type == SourceKind.REMOTE_URL.value:
        if is_streaming_url(identifier):
            process = await materializer.open_ytdlp_stream(identifier, chunk_size=config["stream_chunk_size"])
            return ProcessStreamResponse(
                iter_ytdlp_stream(process),
                on_close=process.terminate,
                media_type="video/mp4",
                headers={"Content-Disposition": f'attachment; filename="{filename}"'},
            )
        if not is_http_url(identifier):
            raise ValidationError(f"Invalid external URL: {identifier}")
        return RedirectResponse(identifier, status_code=307)

    if source_type == SourceKind.CLOUD_OBJECT.value:
        signed_url = await storage.create_signed_url(
            identifier, config["download_signed_url_ttl"], download=True
        )
        return RedirectResponse(signed_url, status_code=307)

    raise ValidationError(f"Invalid sourceType: {source_type}")
