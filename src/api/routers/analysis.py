"""AI analysis, clip rendering and upload routes."""

import logging
import time
from pathlib import Path

from api.dependencies import get_ai_service, get_config, get_storage, get_trim_service
from api.schemas import (
    ErrorResponse,
    ProcessVideoRequest,
    ProcessVideoResponse,
    TrimVideoRequest,
    TrimVideoResponse,
    UploadVideoResponse,
)
from fastapi import APIRouter, Depends, File, UploadFile

from models.clip import ClipRequest, SourceKind
from services.ai_service import AIService
from services.source_resolver import guess_video_mime_type, is_http_url, sanitize_filename
from services.storage_service import SupabaseStorage
from services.trim_service import TrimService
from utils.config import get_supported_video_formats
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analysis"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or invalid parameters"},
    500: {"model": ErrorResponse, "description": "Storage or AI failure"},
}


@router.post(
    "/api/process-video",
    response_model=ProcessVideoResponse,
    summary="Find highlights",
    description="Ask Gemini for short-clip candidates in an uploaded or linked video.",
    responses=ERROR_RESPONSES,
)
async def process_video(
    body: ProcessVideoRequest,
    config: dict = Depends(get_config),
    storage: SupabaseStorage = Depends(get_storage),
    ai_service: AIService = Depends(get_ai_service),
) -> dict:
    """Run highlight analysis on one video.

    Args:
        body: uploadedVideoPath (storage key) or videoUrl

    Returns:
        Clip candidates plus the reference that was analyzed
    """
    if body.uploadedVideoPath:
        path_or_url = body.uploadedVideoPath
        source_type = SourceKind.CLOUD_OBJECT.value
        video_uri = await storage.resolve_readable_url(path_or_url, config["analysis_signed_url_ttl"])
        # The signed URL carries a token; the key keeps the extension
        mime_type = guess_video_mime_type(path_or_url)
    elif body.videoUrl:
        if not is_http_url(body.videoUrl):
            raise ValidationError(f"Invalid videoUrl: {body.videoUrl}")
        path_or_url = body.videoUrl
        source_type = SourceKind.REMOTE_URL.value
        video_uri = body.videoUrl
        mime_type = guess_video_mime_type(video_uri)
    else:
        raise ValidationError("No video path or URL provided.")

    logger.info(f"Analyzing {source_type} video: {path_or_url}")
    clips = await ai_service.find_highlights(video_uri, mime_type=mime_type)

    return {
        "message": "Analysis complete",
        "initialClips": [clip.to_dict() for clip in clips],
        "processedVideoDetails": {"pathOrUrl": path_or_url, "sourceType": source_type},
    }


@router.post(
    "/api/trim-video",
    response_model=TrimVideoResponse,
    summary="Render a subtitled clip",
    description="Cut one highlight, burn in its transcription and upload it to the clips bucket.",
    responses=ERROR_RESPONSES,
)
async def trim_video(
    body: TrimVideoRequest,
    trim_service: TrimService = Depends(get_trim_service),
) -> dict:
    """Render and upload one highlight."""
    if body.videoIdentifier and body.sourceType:
        identifier, source_type = body.videoIdentifier, body.sourceType
    elif body.videoPath:
        identifier, source_type = body.videoPath, SourceKind.CLOUD_OBJECT.value
    else:
        raise ValidationError("Missing videoIdentifier and sourceType (or videoPath).")

    highlight = body.highlight
    request = ClipRequest(
        source_kind=SourceKind.from_source_type(source_type),
        identifier=identifier,
        start_time=highlight.start,
        end_time=highlight.end,
    )
    result = await trim_service.trim(
        request,
        description=highlight.description,
        transcription=highlight.transcription,
    )
    return result.to_dict()


@router.post(
    "/api/upload-video",
    response_model=UploadVideoResponse,
    summary="Upload a video",
    description="Store a browser-provided video in the raw-videos bucket.",
    responses=ERROR_RESPONSES,
)
async def upload_video(
    file: UploadFile = File(...),
    storage: SupabaseStorage = Depends(get_storage),
) -> dict[str, str]:
    """Upload a source video for later analysis and clipping."""
    if not file.filename:
        raise ValidationError("No file provided")

    original = Path(file.filename)
    extension = original.suffix.lower()
    if extension not in get_supported_video_formats():
        raise ValidationError(f"Unsupported video format: {extension or 'none'}")

    key = f"uploads/{int(time.time() * 1000)}_{sanitize_filename(original.stem)}{extension}"
    data = await file.read()
    content_type = file.content_type or guess_video_mime_type(original.name)

    await storage.upload_bytes(key, data, content_type=content_type, cache_control="3600")
    return {"path": key}
