"""Natural-language prompt -> edit actions.

The pipeline core only depends on ``ActionClassifier``; the OpenAI chat
implementation below is one way to satisfy it.
"""
import json
import logging
import re
from typing import Any, List, Optional, Protocol

import httpx

from promptcut.config import settings
from promptcut.errors import ClassificationError
from promptcut.models.actions import EditAction, validate_actions
from promptcut.services.openai_http import auth_headers, extract_error_detail

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You turn video-editing requests into JSON for an editing backend. Reply with JSON only.

Actions:
- cut: keep only the given segment
- remove_segment: delete the given segment
- add_overlay: put text on the video
- extract_audio: save the audio as mp3 or wav
- slow_motion: slow part of the video down
- add_subtitles: transcribe and burn in subtitles
- export: re-encode to mp4, mov or webm
- undo: undo the last edit
- redo: redo the last undone edit

Times are HH:MM:SS or one of: "start" / "beginning" (00:00:00), "end",
"end-HH:MM:SS" (that long before the end).

Rules:
- "remove" or "delete" -> remove_segment; "cut", "clip" or "extract" a span -> cut
- "undo" or "reverse" -> {"action": "undo"}; "redo" or "do again" -> {"action": "redo"}
- Text overlays ("Add 'Subscribe Now' at the end") -> {"action": "add_overlay", "prompt": "<the full request>"}
- "extract audio" / "convert to mp3/wav" -> {"action": "extract_audio", "format": "mp3"}; format is mp3 unless wav is asked for
- "slow motion" / "slow down" -> slow_motion with "start", "end" and "speed" (default 0.5).
  "2x slower" and "half speed" are 0.5, "quarter speed" is 0.25, "75% speed" is 0.75.
  The whole video is start "start" and end "end".
- Always answer {"actions": [ ... ]}

Examples:
- "Remove the last 5 seconds" -> {"actions": [{"action": "remove_segment", "start": "end-00:00:05", "end": "end"}]}
- "Trim the first 10 seconds" -> {"actions": [{"action": "remove_segment", "start": "00:00:00", "end": "00:00:10"}]}
- "Cut the last 10 seconds" -> {"actions": [{"action": "cut", "start": "end-00:00:10", "end": "end"}]}
- "Slow down clip from 2:00 to 2:30 to 25% speed" -> {"actions": [{"action": "slow_motion", "start": "00:02:00", "end": "00:02:30", "speed": 0.25}]}
- "Apply slow motion from 0:40 till the end" -> {"actions": [{"action": "slow_motion", "start": "00:00:40", "end": "end", "speed": 0.5}]}
""".strip()

_CODE_FENCE_RE = re.compile(r"```(?:json)?")


class ActionClassifier(Protocol):
    """Turns a user sentence into validated edit actions."""

    async def classify(self, text: str) -> List[EditAction]:
        ...


def parse_classifier_output(content: str) -> Any:
    """Strip Markdown code fences and decode the JSON body."""
    cleaned = _CODE_FENCE_RE.sub("", content or "").strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ClassificationError(f"Classifier returned invalid JSON: {e}")


class OpenAIActionClassifier:
    """Classifier backed by the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key or settings.openai_api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.model = model or settings.classifier_model
        self.timeout = timeout or settings.classifier_timeout_seconds

    async def _complete(self, text: str) -> str:
        if not self.api_key:
            raise ClassificationError("OpenAI API key is not configured")

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=auth_headers(self.api_key),
                    json=body,
                )
        except httpx.TimeoutException as e:
            raise ClassificationError("Prompt classification timed out") from e
        except httpx.HTTPError as e:
            raise ClassificationError(f"Prompt classification failed: {e}") from e

        if response.status_code != 200:
            raise ClassificationError(f"Prompt classification failed: {extract_error_detail(response)}")

        try:
            return response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ClassificationError(f"Unexpected classifier response: {e}")

    async def classify(self, text: str) -> List[EditAction]:
        content = await self._complete(text)
        logger.info(f"Classifier response: {content}")
        return validate_actions(parse_classifier_output(content))
