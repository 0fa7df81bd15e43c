"""Emergency categorization via Gemini.

Turns a free-text crisis description (any language) into an
:class:`EmergencyCategorization`.  Classification never raises: on any
failure the caller receives :meth:`EmergencyCategorization.default` so
the responder pipeline always has a category to work with.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Final

import structlog
from google.genai import types
from pydantic import ValidationError

from src.models.emergency import EmergencyCategorization
from src.models.enums import EmergencyCategory, Severity

if TYPE_CHECKING:
    from src.services.llm import LLMService

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# System prompt
# ---------------------------------------------------------------------------

CATEGORIZATION_SYSTEM_PROMPT: Final[str] = """\
You are a calm, empathetic, multilingual emergency response assistant \
for India. People write to you while they are in crisis.

LANGUAGE
- Detect the language of the user's message automatically.
- Write "suggestedAction" in the SAME language the user wrote in.
- Report the detected language as an ISO 639-1 code in \
"detectedLanguage" (for example en, hi, bn, ta, es, ar, zh).
- If the message is not in English, put an English translation in \
"translatedMessage".

CATEGORIES
- medical: health emergencies, injuries, medical conditions
- police: security threats, crimes, safety concerns
- mental_health: mental health crises, emotional distress, self-harm
- disaster: fire, flood, earthquake and other large-scale emergencies
- finance: financial emergencies, fraud, debt crises, financial exploitation
- general: any other emergency

SEVERITY
One of low, medium, high, critical.

SUGGESTED ACTION
Acknowledge the situation, give clear and calm immediate steps, \
and reassure the user that help is nearby. Mention accessible \
options for people with disabilities where relevant.

OUTPUT
Respond with a single JSON object:
{
  "category": "medical | police | mental_health | disaster | finance | general",
  "severity": "low | medium | high | critical",
  "keywords": ["key terms from the message, in its original language"],
  "suggestedAction": "immediate action in the user's language",
  "detectedLanguage": "ISO 639-1 code",
  "translatedMessage": "English translation, only if not English"
}\
"""

CATEGORIZATION_SCHEMA: Final[types.Schema] = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "category": types.Schema(
            type=types.Type.STRING,
            enum=[c.value for c in EmergencyCategory],
        ),
        "severity": types.Schema(
            type=types.Type.STRING,
            enum=[s.value for s in Severity],
        ),
        "keywords": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
        ),
        "suggestedAction": types.Schema(type=types.Type.STRING),
        "detectedLanguage": types.Schema(type=types.Type.STRING),
        "translatedMessage": types.Schema(type=types.Type.STRING),
    },
    required=["category", "severity", "keywords", "suggestedAction"],
)


class CategoryClassifier:
    """Classifies emergency messages into category and severity."""

    __slots__ = ("_llm",)

    def __init__(self, llm: LLMService) -> None:
        self._llm = llm

    async def categorize(self, message: str) -> EmergencyCategorization:
        """Classify *message*; returns the safe default on any failure."""
        if not message or not message.strip():
            logger.info("categorizer.empty_message")
            return EmergencyCategorization.default()

        try:
            result = await self._llm.generate_json(
                message,
                system_instruction=CATEGORIZATION_SYSTEM_PROMPT,
                response_schema=CATEGORIZATION_SCHEMA,
            )
            categorization = parse_categorization(result.text)
        except Exception:
            logger.warning("categorizer.failed", message_length=len(message), exc_info=True)
            return EmergencyCategorization.default()

        logger.info(
            "categorizer.classified",
            category=categorization.category.value,
            severity=categorization.severity.value,
            language=categorization.detected_language,
            keywords=len(categorization.keywords),
        )
        return categorization


def parse_categorization(raw: str) -> EmergencyCategorization:
    """Parse a model reply into a categorization.

    Raises
    ------
    ValueError
        If *raw* is empty, not JSON, not an object, or does not match
        the categorization schema.
    """
    raw = (raw or "").strip()
    if not raw:
        raise ValueError("empty response from model")

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"model returned invalid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise ValueError("model returned a non-object JSON value")

    # Blank optional strings are treated as absent.
    for key in ("detectedLanguage", "translatedMessage"):
        if isinstance(payload.get(key), str) and not payload[key].strip():
            payload.pop(key)

    try:
        return EmergencyCategorization.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"model response failed validation: {exc}") from exc
