"""Shared fakes for the responder pipeline tests."""

from __future__ import annotations

import json

import pytest

from src.data.seed import load_seed_responders
from src.models.emergency import Coordinate
from src.services.llm import LLMResult

# Connaught Place, New Delhi.
DELHI = Coordinate(lat=28.6139, lng=77.2090)

POLICE_CATEGORIZATION = {
    "category": "police",
    "severity": "high",
    "keywords": ["theft", "chori"],
    "suggestedAction": "Move to a safe, well-lit place and call 100.",
    "detectedLanguage": "hi",
    "translatedMessage": "Someone stole my bag",
}


def _result(text: str) -> LLMResult:
    return LLMResult(text=text, model="fake-model", tokens_used={"input": 0, "output": 0}, processing_time_ms=0.0)


class FakeLLM:
    """Stands in for :class:`LLMService`.

    ``text_replies`` are returned in order by ``generate_text``; when
    *error* is set every call raises it.
    """

    def __init__(
        self,
        *,
        json_reply: str | dict | None = None,
        text_replies: list[str] | None = None,
        error: Exception | None = None,
        configured: bool = True,
    ) -> None:
        if isinstance(json_reply, dict):
            json_reply = json.dumps(json_reply)
        self._json_reply = json_reply or ""
        self._text_replies = list(text_replies or [])
        self._error = error
        self.is_configured = configured
        self.json_calls: list[str] = []
        self.text_calls: list[str] = []

    async def generate_json(self, prompt: str, **kwargs: object) -> LLMResult:
        self.json_calls.append(prompt)
        if self._error is not None:
            raise self._error
        return _result(self._json_reply)

    async def generate_text(self, prompt: str, **kwargs: object) -> LLMResult:
        self.text_calls.append(prompt)
        if self._error is not None:
            raise self._error
        return _result(self._text_replies.pop(0) if self._text_replies else "")


@pytest.fixture(scope="session")
def seed_data():
    return load_seed_responders()


@pytest.fixture
def delhi() -> Coordinate:
    return DELHI


@pytest.fixture
def fake_llm() -> type[FakeLLM]:
    return FakeLLM


@pytest.fixture
def police_reply() -> dict:
    return dict(POLICE_CATEGORIZATION)
