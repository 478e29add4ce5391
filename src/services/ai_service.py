"""AI service for highlight analysis using Google GenAI.

Gemini is handed the video by URI (a public or signed storage URL, or a
plain external URL) and asked for a JSON array of clip candidates.
"""

import json
import logging
from typing import Any, List, Optional

from google.genai import Client
from google.genai import types

from models.clip import ClipCandidate, HighlightParseResult
from services.prompts import (
    HIGHLIGHT_FINDER_V1,
    PROMPT_VERSIONS,
    strip_markdown_code_blocks,
    truncate_for_log,
)
from services.source_resolver import guess_video_mime_type
from utils.errors import AnalysisError, ConfigurationError

logger = logging.getLogger(__name__)

SAFETY_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


def _to_seconds(value: Any) -> Optional[float]:
    # bool is an int subclass but never a valid offset
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def parse_highlights(text: Optional[str]) -> HighlightParseResult:
    """Parse the model's reply into clip candidates.

    Elements that are not objects with numeric startTime < endTime and a
    description are dropped and counted.

    Args:
        text: Raw response text (may be wrapped in a markdown fence)

    Returns:
        HighlightParseResult; ok is False when the text is not a JSON array
    """
    if not text or not text.strip():
        return HighlightParseResult.failure("AI response is empty")

    cleaned = strip_markdown_code_blocks(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        return HighlightParseResult.failure(f"Failed to parse AI response as JSON: {e}")

    if not isinstance(data, list):
        return HighlightParseResult.failure("AI response is not a JSON array")

    clips: List[ClipCandidate] = []
    dropped = 0
    for item in data:
        if not isinstance(item, dict):
            dropped += 1
            continue
        start = _to_seconds(item.get("startTime"))
        end = _to_seconds(item.get("endTime"))
        description = item.get("description")
        if start is None or end is None or start < 0 or end <= start:
            dropped += 1
            continue
        if not isinstance(description, str) or not description.strip():
            dropped += 1
            continue
        transcription = item.get("transcription")
        if not isinstance(transcription, str) or not transcription.strip():
            transcription = "N/A"
        clips.append(
            ClipCandidate(
                start_time=start,
                end_time=end,
                description=description.strip(),
                transcription=transcription.strip(),
            )
        )

    if dropped:
        logger.warning(f"Dropped {dropped} malformed highlight(s) from AI response")
    return HighlightParseResult.success(clips, dropped=dropped)


class AIService:
    """Service for AI-powered highlight detection using Gemini."""

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = "gemini-2.5-flash",
        min_clip_seconds: int = 15,
        max_clip_seconds: int = 60,
        client: Optional[Client] = None,
    ):
        """Initialize Google GenAI client.

        Args:
            api_key: Google GenAI API key (analysis fails without one)
            model_name: Gemini model to use
            min_clip_seconds: Shortest clip the prompt asks for
            max_clip_seconds: Longest clip the prompt asks for
            client: Pre-built client (tests)
        """
        self.model_name = model_name
        self.min_clip_seconds = min_clip_seconds
        self.max_clip_seconds = max_clip_seconds
        self.client = client
        if self.client is None and api_key:
            self.client = Client(api_key=api_key)

        if self.client is None:
            logger.warning("GEMINI_API_KEY missing - video analysis will fail")
        else:
            logger.info(f"Initialized AI service with model: {model_name}")

    @property
    def configured(self) -> bool:
        return self.client is not None

    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=0.4,
            top_k=32,
            top_p=1,
            max_output_tokens=4096,
            safety_settings=[
                types.SafetySetting(
                    category=category,
                    threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
                )
                for category in SAFETY_CATEGORIES
            ],
        )

    async def find_highlights(self, video_uri: str, mime_type: Optional[str] = None) -> List[ClipCandidate]:
        """Ask Gemini for highlight clips in the video at video_uri.

        Args:
            video_uri: URL Gemini can fetch the video from
            mime_type: Video MIME type (guessed from the URL if omitted)

        Returns:
            Clip candidates (possibly empty)

        Raises:
            ConfigurationError: if no API key is configured
            AnalysisError: if the call fails or the reply is unusable
        """
        if self.client is None:
            raise ConfigurationError("Gemini API key not configured on server.")

        mime_type = mime_type or guess_video_mime_type(video_uri)
        prompt = HIGHLIGHT_FINDER_V1.format(
            min_seconds=self.min_clip_seconds, max_seconds=self.max_clip_seconds
        )
        logger.info(
            f"Requesting highlights ({PROMPT_VERSIONS['find_highlights']}) "
            f"from {self.model_name} for {mime_type} video"
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Part.from_uri(file_uri=video_uri, mime_type=mime_type),
                    prompt,
                ],
                config=self._generation_config(),
            )
        except Exception as e:
            logger.error(f"Highlight analysis failed: {e}")
            raise AnalysisError(f"Gemini request failed: {e}") from e

        text = response.text
        result = parse_highlights(text)
        if not result.ok:
            logger.error(f"{result.error}. Raw response: {truncate_for_log(text or '')}")
            raise AnalysisError(
                f"{result.error}. Response excerpt: {truncate_for_log(text or '')}"
            )

        logger.info(f"AI found {len(result.clips)} highlight(s)")
        return result.clips
