"""Highlight analysis prompt templates.

Contains prompts for:
- HIGHLIGHT_FINDER_V1: Find short-clip candidates in a whole video
"""

# Highlight Finder v1 prompt. The video itself is sent as a separate part.
# Template placeholders: {min_seconds}, {max_seconds}
HIGHLIGHT_FINDER_V1 = """Analyze this video and identify key moments that would make good short clips ({min_seconds}-{max_seconds} seconds).

For each potential clip, provide ONLY:
1. "startTime" (integer, in seconds from the beginning of the video)
2. "endTime" (integer, in seconds from the beginning of the video)
3. "description" (a concise, engaging, one-sentence summary of the clip's content, suitable for a social media post title)
4. "transcription" (a short, key quote or phrase from the clip's audio, if discernible and relevant, otherwise "N/A")

Format your response as a valid JSON array of objects. Each object should strictly follow this structure:
{{"startTime": <seconds>, "endTime": <seconds>, "description": "concise summary", "transcription": "key quote or N/A"}}

Do not include any other fields or introductory text. Ensure startTime is less than endTime."""
