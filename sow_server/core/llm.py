"""LLM interaction module: the text-in/text-out model seam and its JSON parsing."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import anthropic
from anthropic import Anthropic

from .config import (
    ANTHROPIC_API_KEY,
    CLAUDE_MODEL,
    MODEL_TIMEOUT_SECONDS,
    TEMPERATURE,
)
from .errors import ModelInvocationError, ResponseParseError

logger = logging.getLogger(__name__)


class ModelClient:
    """Abstract text-in/text-out generative model.

    Implementations raise ``ModelInvocationError`` for transport, timeout and
    throttling failures. The returned text is not guaranteed to be JSON.
    """

    def invoke(self, prompt: str, max_tokens: int) -> str:
        raise NotImplementedError


class ClaudeClient(ModelClient):
    """Handles interaction with the Claude API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: str = CLAUDE_MODEL,
        timeout: float = MODEL_TIMEOUT_SECONDS,
        temperature: float = TEMPERATURE,
    ) -> None:
        self.api_key = api_key or ANTHROPIC_API_KEY
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY not found. Please set it in .env file")

        # No SDK-level retries: the callers own the recovery policy
        self.client = Anthropic(api_key=self.api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.temperature = temperature

    def invoke(self, prompt: str, max_tokens: int) -> str:
        logger.info("Calling Claude API (model=%s, max_tokens=%s)", self.model, max_tokens)
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=self.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.RateLimitError as exc:
            raise ModelInvocationError(f"Model throttled the request: {exc}") from exc
        except anthropic.APITimeoutError as exc:
            raise ModelInvocationError(f"Model request timed out: {exc}") from exc
        except anthropic.APIStatusError as exc:
            raise ModelInvocationError(f"Model returned HTTP {exc.status_code}: {exc.message}") from exc
        except anthropic.APIError as exc:
            raise ModelInvocationError(f"Model request failed: {exc}") from exc

        text = self._extract_text_from_response(response)
        if not text:
            raise ModelInvocationError("No text content found in Claude response")
        return text

    def _extract_text_from_response(self, response: Any) -> str:
        """Extract text content from Claude response, handling multiple content blocks."""
        if not hasattr(response, "content"):
            return ""

        text_parts = []
        for block in response.content:
            if getattr(block, "type", None) == "text" and hasattr(block, "text"):
                text_parts.append(block.text)

        return "\n".join(text_parts)


def parse_json_object(response_text: str) -> Dict[str, Any]:
    """Parse a model response that must consist of exactly one JSON object.

    A surrounding ```json fence is tolerated; prose before or after the object
    is not. Raises ``ResponseParseError`` on any other shape.
    """
    text = (response_text or "").strip()
    if not text:
        raise ResponseParseError("Model response was empty")

    if text.startswith("```"):
        fence_end = text.rfind("```")
        if fence_end <= 3:
            raise ResponseParseError("Unterminated code fence in model response")
        text = text[3:fence_end].strip()
        if text.lower().startswith("json"):
            text = text[4:].strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        preview = text[:200]
        logger.warning("Model response is not valid JSON (%s). Preview: %s", exc, preview)
        raise ResponseParseError(f"Model response is not valid JSON: {exc.msg} at position {exc.pos}") from exc

    if not isinstance(data, dict):
        raise ResponseParseError(f"Model response must be a JSON object, got {type(data).__name__}")
    return data
