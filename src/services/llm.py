"""Gemini LLM service for Rakshak.

Wraps the ``google-genai`` SDK's async client with the two call shapes
the responder pipeline needs: structured JSON generation (emergency
categorization) and short free-text generation (locality lookup and
facility search).  No retries are performed here; callers treat any
failure as "tier unavailable".
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import structlog
from google import genai
from google.genai import types

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class LLMNotConfiguredError(RuntimeError):
    """Raised when a Gemini call is attempted without an API key."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class LLMResult:
    """Result returned by :meth:`LLMService.generate_text` and friends."""

    text: str
    model: str
    tokens_used: dict[str, int]
    processing_time_ms: float
    provider: str = field(default="gemini")


# ---------------------------------------------------------------------------
# LLMService
# ---------------------------------------------------------------------------


class LLMService:
    """Async interface to Gemini for Rakshak.

    The underlying client is created lazily on first use so that the
    application starts (and degrades gracefully) without an API key.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.5-flash",
        search_model_name: str = "gemini-2.0-flash",
    ) -> None:
        self._api_key = api_key
        self._model_name = model_name
        self._search_model_name = search_model_name
        self._client: genai.Client | None = None

    # -- lifecycle ----------------------------------------------------------

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def search_model_name(self) -> str:
        return self._search_model_name

    def _get_client(self) -> genai.Client:
        if not self._api_key:
            raise LLMNotConfiguredError("GEMINI_API_KEY is not set")
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
            logger.info("llm_initialized", model=self._model_name)
        return self._client

    # -- public API ---------------------------------------------------------

    async def generate_json(
        self,
        prompt: str,
        *,
        system_instruction: str,
        response_schema: types.Schema | None = None,
        temperature: float = 0.2,
    ) -> LLMResult:
        """Generate a JSON document with the categorization model.

        The raw text is returned unparsed; callers own validation.
        """
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            response_mime_type="application/json",
            response_schema=response_schema,
            temperature=temperature,
        )
        return await self._generate(self._model_name, prompt, config, kind="json")

    async def generate_text(
        self,
        prompt: str,
        *,
        model: str | None = None,
        temperature: float = 0.2,
        max_output_tokens: int | None = None,
    ) -> LLMResult:
        """Generate free text.  Defaults to the search model."""
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        return await self._generate(model or self._search_model_name, prompt, config, kind="text")

    # -- helpers ------------------------------------------------------------

    async def _generate(
        self,
        model: str,
        prompt: str,
        config: types.GenerateContentConfig,
        *,
        kind: str,
    ) -> LLMResult:
        client = self._get_client()
        start = time.perf_counter()

        response = await client.aio.models.generate_content(
            model=model,
            contents=[types.Content(role="user", parts=[types.Part.from_text(text=prompt)])],
            config=config,
        )

        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        text = response.text or ""
        tokens = _token_usage(response)

        logger.info(
            "llm_generate",
            kind=kind,
            model=model,
            prompt_length=len(prompt),
            answer_length=len(text),
            input_tokens=tokens["input"],
            output_tokens=tokens["output"],
            processing_time_ms=elapsed_ms,
        )
        return LLMResult(
            text=text,
            model=model,
            tokens_used=tokens,
            processing_time_ms=elapsed_ms,
        )


def _token_usage(response: Any) -> dict[str, int]:
    usage = getattr(response, "usage_metadata", None)
    input_tokens = (usage.prompt_token_count or 0) if usage else 0
    output_tokens = (usage.candidates_token_count or 0) if usage else 0
    return {"input": input_tokens, "output": output_tokens}
