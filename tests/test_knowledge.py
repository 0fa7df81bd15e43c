"""Tests for the Gemini knowledge-search tier and its lenient JSON parsing."""

from __future__ import annotations

import json

import pytest

from src.models.emergency import Coordinate
from src.models.enums import ResponderSource
from src.services.responders.knowledge import (
    DEFAULT_LOCALITY,
    KnowledgeResolver,
    candidates_from_payload,
    extract_json_array,
    knowledge_prompt,
)

BANGALORE = Coordinate(lat=12.9716, lng=77.5946)

HOSPITALS = [
    {
        "name": "Victoria Hospital",
        "address": "Fort Road, Bengaluru, Karnataka",
        "phone": "+91-80-26701150",
        "distance": 2.5,
        "hours": "24/7",
    },
    {
        "name": "Bowring Hospital",
        "address": "Shivajinagar, Bengaluru, Karnataka",
        "phone": "+91-80-25591362",
        "distance": "3.1",
        "hours": "24/7",
        "lat": 12.9826,
        "lng": 77.6046,
    },
]


class TestExtractJsonArray:
    def test_plain_array(self) -> None:
        assert extract_json_array('[{"a": 1}]') == '[{"a": 1}]'

    def test_markdown_fences_removed(self) -> None:
        text = '```json\n[{"name": "X"}]\n```'
        assert json.loads(extract_json_array(text)) == [{"name": "X"}]

    def test_surrounding_prose_ignored(self) -> None:
        text = 'Here are the facilities:\n[{"name": "X"}]\nStay safe!'
        assert json.loads(extract_json_array(text)) == [{"name": "X"}]

    def test_brackets_inside_strings(self) -> None:
        text = '[{"name": "Ward ] 4 [annex]", "note": "say \\"]\\""}] trailing ]'
        assert json.loads(extract_json_array(text))[0]["name"] == "Ward ] 4 [annex]"

    def test_first_top_level_array_only(self) -> None:
        assert extract_json_array("[1, [2]] [3]") == "[1, [2]]"

    @pytest.mark.parametrize("text", ["", "no array here", '{"name": "X"}', "[1, 2"])
    def test_no_complete_array(self, text: str) -> None:
        assert extract_json_array(text) is None


class TestCandidatesFromPayload:
    def test_maps_entries(self) -> None:
        candidates = candidates_from_payload(json.dumps(HOSPITALS))

        assert [c.name for c in candidates] == ["Victoria Hospital", "Bowring Hospital"]
        assert all(c.source == ResponderSource.AI for c in candidates)
        assert candidates[0].location is None
        assert candidates[0].estimated_distance_km == 2.5
        assert candidates[1].estimated_distance_km == 3.1
        assert candidates[1].location == Coordinate(lat=12.9826, lng=77.6046)
        assert candidates[0].source_id != candidates[1].source_id

    def test_entries_without_name_skipped(self) -> None:
        payload = json.dumps([{"address": "nowhere"}, "junk", {"name": "  "}, {"name": "Real Clinic"}])
        assert [c.name for c in candidates_from_payload(payload)] == ["Real Clinic"]

    @pytest.mark.parametrize("text", ["", "sorry, I cannot help", "[]", "[{broken json}]"])
    def test_unusable_text_yields_empty(self, text: str) -> None:
        assert candidates_from_payload(text) == []

    def test_invalid_distance_ignored(self) -> None:
        payload = json.dumps([{"name": "X", "distance": "near"}])
        assert candidates_from_payload(payload)[0].estimated_distance_km is None


class TestKnowledgeResolver:
    async def test_locality_strips_quotes(self, fake_llm) -> None:
        llm = fake_llm(text_replies=['"Bengaluru, Karnataka"\n'])
        assert await KnowledgeResolver(llm).resolve_locality(BANGALORE) == "Bengaluru, Karnataka"

    async def test_locality_failure_defaults_to_india(self, fake_llm) -> None:
        llm = fake_llm(error=TimeoutError())
        assert await KnowledgeResolver(llm).resolve_locality(BANGALORE) == DEFAULT_LOCALITY

    async def test_locality_blank_defaults_to_india(self, fake_llm) -> None:
        llm = fake_llm(text_replies=["``"])
        assert await KnowledgeResolver(llm).resolve_locality(BANGALORE) == "India"

    async def test_resolve_runs_locality_then_search(self, fake_llm) -> None:
        llm = fake_llm(text_replies=["Bengaluru, Karnataka", "```json\n" + json.dumps(HOSPITALS) + "\n```"])
        candidates = await KnowledgeResolver(llm).resolve("medical", BANGALORE, 3)

        assert [c.name for c in candidates] == ["Victoria Hospital", "Bowring Hospital"]
        assert len(llm.text_calls) == 2
        assert "Bengaluru, Karnataka" in llm.text_calls[1]

    async def test_search_truncates_to_limit(self, fake_llm) -> None:
        llm = fake_llm(text_replies=[json.dumps(HOSPITALS)])
        candidates = await KnowledgeResolver(llm).knowledge_search("medical", BANGALORE, "Bengaluru", 1)
        assert len(candidates) == 1

    async def test_search_keeps_nearest_when_model_returns_extra(self, fake_llm) -> None:
        farther_first = [
            {"name": "Far Clinic", "distance": 9.0},
            {"name": "Mid Clinic", "distance": 4.0},
            {"name": "Near Clinic", "distance": 1.0},
        ]
        llm = fake_llm(text_replies=[json.dumps(farther_first)])

        candidates = await KnowledgeResolver(llm).knowledge_search("medical", BANGALORE, "Bengaluru", 2)

        assert [c.name for c in candidates] == ["Near Clinic", "Mid Clinic"]

    async def test_search_error_yields_empty(self, fake_llm) -> None:
        llm = fake_llm(error=RuntimeError("503"))
        assert await KnowledgeResolver(llm).knowledge_search("police", BANGALORE, "Bengaluru", 3) == []

    async def test_malformed_reply_yields_empty(self, fake_llm) -> None:
        llm = fake_llm(text_replies=["Bengaluru, Karnataka", "I could not find anything."])
        assert await KnowledgeResolver(llm).resolve("police", BANGALORE, 3) == []

    async def test_not_configured_makes_no_calls(self, fake_llm) -> None:
        llm = fake_llm(configured=False, text_replies=[json.dumps(HOSPITALS)])
        assert await KnowledgeResolver(llm).resolve("medical", BANGALORE, 3) == []
        assert llm.text_calls == []


def test_prompt_mentions_locality_and_limit() -> None:
    prompt = knowledge_prompt("mental_health", BANGALORE, "Bengaluru, Karnataka", 4)
    assert "Bengaluru, Karnataka" in prompt
    assert "4 nearest" in prompt
    assert "+91" in prompt
