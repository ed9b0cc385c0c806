"""
Anthropic Claude API client wrapper.

This module provides a thin wrapper around the Anthropic SDK that:
1. Implements our SyncModelClient protocol
2. Translates content parts into Claude content blocks (base64 encoding)
3. Forces structured output through a single tool whose input schema is
   the event list
4. Translates SDK errors into the pipeline's error taxonomy

Claude accepts images and PDF documents but not video, so this client
reports `accepts_inline_video = False` and the synchronizer always samples.
"""

import base64
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

import anthropic
from anthropic import APIConnectionError, APIError, APIStatusError, RateLimitError

from ...core.sync.errors import (
    ModelBoundaryError,
    ModelResponseError,
    PayloadTooLargeError,
    RateLimitExceeded,
    RequestRejectedError,
    UnsupportedContentPartError,
)
from ...core.sync.models import ContentPart, MediaPart, TextPart
from ...core.sync.prompts import SYNC_EVENTS_SCHEMA

if TYPE_CHECKING:
    from ...config.settings import Settings

logger = logging.getLogger(__name__)

SYNC_TOOL_NAME = "record_slide_changes"

SYSTEM_PROMPT = (
    "You align lecture recordings with their slide decks. "
    "Always answer by calling the record_slide_changes tool."
)


@dataclass
class AnthropicConfig:
    """
    Configuration for the Anthropic client.

    Validated at construction time so a bad deployment fails on startup
    rather than on the first upload.
    """
    api_key: str
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 8192
    temperature: float = 0.2  # matching, not creative writing

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("API key is required")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")
        if not 0 <= self.temperature <= 1:
            raise ValueError("temperature must be between 0 and 1")


class AnthropicSyncClient:
    """
    Implementation of SyncModelClient using Claude.

    This class knows about Anthropic's API format but doesn't know about
    slides or sampling. It sends ordered parts and returns the raw items
    of the tool call.
    """

    accepts_inline_video = False

    def __init__(self, config: AnthropicConfig) -> None:
        self._config = config
        self._client = anthropic.AsyncAnthropic(api_key=config.api_key)

    async def generate_sync_events(self, parts: Sequence[ContentPart]) -> list[Any]:
        if not parts:
            raise ValueError("At least one content part is required")

        content = self.build_content(parts)

        try:
            response = await self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
                system=SYSTEM_PROMPT,
                tools=[sync_tool_definition()],
                tool_choice={"type": "tool", "name": SYNC_TOOL_NAME},
                messages=[{"role": "user", "content": content}],
            )
        except RateLimitError as e:
            logger.warning("Rate limit hit", extra={"error": str(e)})
            raise RateLimitExceeded(
                "API rate limit exceeded. Please try again later.", status_code=429, cause=e
            ) from e
        except APIStatusError as e:
            raise translate_status_error(e) from e
        except APIConnectionError as e:
            logger.error("Could not reach API", extra={"error": str(e)})
            raise ModelBoundaryError("Could not reach the model API", cause=e) from e
        except APIError as e:
            logger.error("API error", extra={"error": str(e)})
            raise ModelBoundaryError(f"API error: {e.message}", cause=e) from e

        return self._extract_events(response)

    def build_content(self, parts: Sequence[ContentPart]) -> list[dict]:
        """
        Build the content array for one request, preserving part order.

        Claude expects:
        [
            {"type": "text", "text": "[VIDEO_FRAME_TIMESTAMP: 00:00 (Seconds: 0)]"},
            {"type": "image", "source": {"type": "base64", "media_type": "image/jpeg", "data": "..."}},
            ...
            {"type": "document", "source": {"type": "base64", "media_type": "application/pdf", ...}},
            {"type": "text", "text": "<instruction>"}
        ]
        """
        content = []

        for part in parts:
            if isinstance(part, TextPart):
                content.append({"type": "text", "text": part.text})
            elif isinstance(part, MediaPart):
                content.append(self._media_block(part))
            else:
                raise UnsupportedContentPartError(
                    f"Unsupported content part: {type(part).__name__}"
                )

        return content

    def _media_block(self, part: MediaPart) -> dict:
        source = {
            "type": "base64",
            "media_type": part.mime_type,
            "data": base64.b64encode(part.data).decode("utf-8"),
        }
        if part.is_image:
            return {"type": "image", "source": source}
        if part.mime_type == "application/pdf":
            return {"type": "document", "source": source}
        raise UnsupportedContentPartError(
            f"Claude cannot accept inline {part.mime_type} content"
        )

    def _extract_events(self, response) -> list[Any]:
        """Pull the event list out of the forced tool call."""
        for block in response.content or []:
            if getattr(block, "type", None) == "tool_use" and block.name == SYNC_TOOL_NAME:
                events = (block.input or {}).get("events")
                if isinstance(events, list):
                    return events
                raise ModelResponseError("Tool call did not contain an event list")

        logger.error(
            "Model returned no tool call",
            extra={"stop_reason": getattr(response, "stop_reason", None)},
        )
        raise ModelResponseError("The model did not return any data")


def sync_tool_definition() -> dict:
    """Tool whose input schema is the structured output we want."""
    return {
        "name": SYNC_TOOL_NAME,
        "description": "Record every slide change found in the lecture video, in chronological order.",
        "input_schema": {
            "type": "object",
            "properties": {"events": SYNC_EVENTS_SCHEMA},
            "required": ["events"],
        },
    }


def translate_status_error(error: APIStatusError) -> ModelBoundaryError:
    """Map an HTTP error from the API onto our taxonomy."""
    status_code = error.status_code
    text = str(error.message or "")
    logger.error("API error", extra={"error": text, "status": status_code})

    if status_code == 413 or "too large" in text.lower():
        return PayloadTooLargeError(
            "Request payload is too large", status_code=status_code, cause=error
        )
    if status_code == 400:
        return RequestRejectedError(
            f"Request rejected: {text}", status_code=status_code, cause=error
        )
    if status_code == 429:
        return RateLimitExceeded(
            "API rate limit exceeded. Please try again later.", status_code=status_code, cause=error
        )
    return ModelBoundaryError(f"API error: {text}", status_code=status_code, cause=error)


# ---------------------------------------------------------------------------
# Mock client
# ---------------------------------------------------------------------------

_FRAME_MARKER = re.compile(r"\[VIDEO_FRAME_TIMESTAMP: (\d+:\d+) \(Seconds: (\d+)\)\]")
_PAGE_MARKER = re.compile(r"\[PDF_PAGE_NUMBER_(\d+)\]")


class MockSyncModelClient:
    """
    Deterministic stand-in for local development without an API key.

    Reads the markers in the payload and reports one slide change per page,
    spread evenly over the sampled frame times.
    """

    def __init__(self, accepts_inline_video: bool = False, spacing_seconds: int = 30) -> None:
        self.accepts_inline_video = accepts_inline_video
        self._spacing = spacing_seconds
        self.calls: list[list[ContentPart]] = []
        logger.info("Initialized mock sync model client")

    async def generate_sync_events(self, parts: Sequence[ContentPart]) -> list[Any]:
        self.calls.append(list(parts))

        frames: list[tuple[str, int]] = []
        pages: list[int] = []
        for part in parts:
            if not isinstance(part, TextPart):
                continue
            frame_match = _FRAME_MARKER.fullmatch(part.text)
            if frame_match:
                frames.append((frame_match.group(1), int(frame_match.group(2))))
                continue
            page_match = _PAGE_MARKER.fullmatch(part.text)
            if page_match:
                pages.append(int(page_match.group(1)))

        pages = pages or [1]
        events = []
        for index, page in enumerate(pages):
            if frames:
                timestamp, seconds = frames[index * len(frames) // len(pages)]
            else:
                seconds = index * self._spacing
                timestamp = f"{seconds // 60:02d}:{seconds % 60:02d}"
            events.append({
                "timestamp": timestamp,
                "seconds": seconds,
                "pdfPageNumber": page,
                "slideTitle": f"Slide {page}",
                "reasoning": "Mock match by position.",
            })
        return events


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_sync_model_client(settings: "Settings"):
    """
    Factory function to create a configured model client.

    In mock mode no API key is needed; otherwise the key comes from
    settings (ANTHROPIC_API_KEY).
    """
    if settings.model_mock_mode:
        return MockSyncModelClient()

    if not settings.anthropic_api_key:
        raise ValueError("ANTHROPIC_API_KEY must be set unless MODEL_MOCK_MODE is enabled")

    config = AnthropicConfig(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        temperature=settings.anthropic_temperature,
    )
    return AnthropicSyncClient(config)
