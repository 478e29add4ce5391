"""Pydantic request/response models for the clipper API."""

from pydantic import BaseModel, Field, model_validator

# =============================================================================
# Response Models
# =============================================================================


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str

    model_config = {"json_schema_extra": {"examples": [{"message": "Hello from local API!"}]}}


class RootResponse(BaseModel):
    """Root endpoint response."""

    message: str
    version: str

    model_config = {"json_schema_extra": {"examples": [{"message": "Clipper API", "version": "1.0.0"}]}}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str

    model_config = {"json_schema_extra": {"examples": [{"status": "healthy"}]}}


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str

    model_config = {"json_schema_extra": {"examples": [{"error": "Invalid startTime or endTime parameters."}]}}


class ClipCandidateResponse(BaseModel):
    """One highlight proposed by the AI service."""

    startTime: int | float
    endTime: int | float
    description: str
    transcription: str = "N/A"


class ProcessedVideoDetails(BaseModel):
    """Which video was analyzed, echoed back for the trim step."""

    pathOrUrl: str
    sourceType: str


class ProcessVideoResponse(BaseModel):
    """Result of AI highlight analysis."""

    message: str
    initialClips: list[ClipCandidateResponse]
    processedVideoDetails: ProcessedVideoDetails

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "message": "Analysis complete",
                    "initialClips": [
                        {
                            "startTime": 12,
                            "endTime": 41,
                            "description": "The host reveals the surprise ending",
                            "transcription": "I did not see that coming",
                        }
                    ],
                    "processedVideoDetails": {"pathOrUrl": "uploads/1718000000000_talk.mp4", "sourceType": "supabase"},
                }
            ]
        }
    }


class TrimVideoResponse(BaseModel):
    """A rendered, uploaded clip."""

    clipUrl: str
    description: str
    transcription: str
    start: int | float
    end: int | float
    message: str


class UploadVideoResponse(BaseModel):
    """Storage key of an uploaded video."""

    path: str

    model_config = {"json_schema_extra": {"examples": [{"path": "uploads/1718000000000_talk.mp4"}]}}


# =============================================================================
# Request Models
# =============================================================================


class ProcessVideoRequest(BaseModel):
    """Body of POST /api/process-video: exactly one video reference."""

    uploadedVideoPath: str | None = None
    videoUrl: str | None = None


class Highlight(BaseModel):
    """Segment to render, as returned by process-video and edited by the user."""

    start: float = Field(ge=0)
    end: float = Field(gt=0)
    description: str = ""
    transcription: str | None = None

    @model_validator(mode="after")
    def check_order(self) -> "Highlight":
        if self.end <= self.start:
            raise ValueError("highlight.end must be greater than highlight.start")
        return self


class TrimVideoRequest(BaseModel):
    """Body of POST /api/trim-video.

    ``videoPath`` is the older form and always names a storage object.
    """

    videoIdentifier: str | None = None
    sourceType: str | None = None
    videoPath: str | None = None
    highlight: Highlight
