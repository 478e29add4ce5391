"""Unit tests for AIService highlight analysis."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from services.ai_service import AIService, parse_highlights
from services.prompts import strip_markdown_code_blocks
from utils.errors import AnalysisError, ConfigurationError


@pytest.mark.unit
class TestStripMarkdown:
    @pytest.mark.parametrize(
        "text",
        ['```json\n[1]\n```', '```\n[1]\n```', '```JSON [1]```', "  [1]  "],
    )
    def test_strips_fences(self, text):
        assert strip_markdown_code_blocks(text) == "[1]"


@pytest.mark.unit
class TestParseHighlights:
    """Tests for parse_highlights()."""

    def test_parses_fenced_array(self, sample_ai_response):
        result = parse_highlights(sample_ai_response)

        assert result.ok
        assert len(result.clips) == 2
        assert result.clips[0].start_time == 12
        assert result.clips[0].transcription == "I did not see that coming"
        assert result.clips[1].end_time == 120

    def test_drops_malformed_elements(self):
        text = """[
          {"startTime": 5, "endTime": 10, "description": "ok"},
          {"startTime": 10, "endTime": 5, "description": "reversed"},
          {"startTime": "x", "endTime": 5, "description": "bad number"},
          {"startTime": 1, "endTime": 2},
          {"startTime": true, "endTime": 2, "description": "bool"},
          "not an object"
        ]"""
        result = parse_highlights(text)

        assert result.ok
        assert [c.description for c in result.clips] == ["ok"]
        assert result.clips[0].transcription == "N/A"
        assert result.dropped == 5

    def test_numeric_strings_are_accepted(self):
        result = parse_highlights('[{"startTime": "3", "endTime": "7.5", "description": "d"}]')
        assert result.clips[0].end_time == 7.5

    @pytest.mark.parametrize(
        "text,error",
        [
            ("", "empty"),
            ("Sorry, I cannot help with that.", "Failed to parse"),
            ('{"startTime": 1}', "not a JSON array"),
        ],
    )
    def test_failures(self, text, error):
        result = parse_highlights(text)
        assert not result.ok
        assert error in result.error


def _service_with_response(text):
    client = Mock()
    client.aio.models.generate_content = AsyncMock(return_value=Mock(text=text))
    return AIService(api_key=None, client=client), client


@pytest.mark.unit
class TestFindHighlights:
    """Tests for AIService.find_highlights()."""

    @pytest.mark.asyncio
    async def test_returns_clips(self, sample_ai_response):
        service, client = _service_with_response(sample_ai_response)

        clips = await service.find_highlights("https://x/video.mov?token=1")

        assert len(clips) == 2
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        config = kwargs["config"]
        assert config.temperature == 0.4
        assert config.top_k == 32
        assert config.max_output_tokens == 4096
        assert len(config.safety_settings) == 4
        video_part = kwargs["contents"][0]
        assert video_part.file_data.mime_type == "video/quicktime"
        assert video_part.file_data.file_uri == "https://x/video.mov?token=1"

    @pytest.mark.asyncio
    async def test_explicit_mime_type_wins(self, sample_ai_response):
        service, client = _service_with_response(sample_ai_response)
        await service.find_highlights("https://x/signed?token=1", mime_type="video/webm")
        video_part = client.aio.models.generate_content.call_args.kwargs["contents"][0]
        assert video_part.file_data.mime_type == "video/webm"

    @pytest.mark.asyncio
    async def test_unparseable_reply_raises_with_excerpt(self):
        service, _ = _service_with_response("x" * 800)

        with pytest.raises(AnalysisError) as exc_info:
            await service.find_highlights("https://x/video.mp4")

        message = str(exc_info.value)
        assert "Failed to parse" in message
        assert "x" * 500 + "..." in message
        assert "x" * 501 not in message

    @pytest.mark.asyncio
    async def test_api_failure_raises_analysis_error(self):
        client = Mock()
        client.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("quota exceeded"))
        service = AIService(api_key=None, client=client)

        with pytest.raises(AnalysisError, match="quota exceeded"):
            await service.find_highlights("https://x/video.mp4")

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        service = AIService(api_key=None)
        assert not service.configured
        with pytest.raises(ConfigurationError):
            await service.find_highlights("https://x/video.mp4")

    def test_client_built_from_api_key(self):
        with patch("services.ai_service.Client") as client_cls:
            service = AIService(api_key="test_key")
        client_cls.assert_called_once_with(api_key="test_key")
        assert service.configured
