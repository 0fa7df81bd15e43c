"""Tests for the responder resolution orchestrator and its fallback ladder."""

from __future__ import annotations

import pytest

from src.models.emergency import Coordinate, ResponderCandidate
from src.models.enums import EmergencyCategory, ResponderSource
from src.pipeline.orchestrator import (
    ResolutionOrchestrator,
    ResponderResolutionError,
    normalize,
)
from src.services.categorizer import CategoryClassifier
from src.services.responders.directory import PlacesDirectoryResolver
from src.services.responders.knowledge import KnowledgeResolver
from src.services.responders.seeded import SeededResponderResolver

DELHI = Coordinate(lat=28.6139, lng=77.2090)


def _candidate(
    source_id: str,
    lat: float | None,
    lng: float | None,
    *,
    source: ResponderSource = ResponderSource.PLACES,
    estimate: float | None = None,
) -> ResponderCandidate:
    return ResponderCandidate(
        name=f"Responder {source_id}",
        address="Delhi",
        location=Coordinate(lat=lat, lng=lng) if lat is not None else None,
        source_id=source_id,
        source=source,
        estimated_distance_km=estimate,
    )


class FakeResolver:
    """Tier double that counts calls."""

    def __init__(
        self,
        source: ResponderSource,
        results: list[ResponderCandidate] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.source = source
        self._results = results or []
        self._error = error
        self.calls = 0

    async def resolve(self, category: str, at: Coordinate, limit: int) -> list[ResponderCandidate]:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return list(self._results)


@pytest.fixture
def classifier(fake_llm, police_reply) -> CategoryClassifier:
    return CategoryClassifier(fake_llm(json_reply=police_reply))


# ---------------------------------------------------------------------------
# Fallback ladder
# ---------------------------------------------------------------------------


class TestFallbackLadder:
    async def test_first_non_empty_tier_wins(self, classifier) -> None:
        directory = FakeResolver(ResponderSource.PLACES, [_candidate("a", 28.62, 77.21)])
        knowledge = FakeResolver(ResponderSource.AI, [_candidate("b", 28.62, 77.21)])
        seeded = FakeResolver(ResponderSource.SEED, [_candidate("c", 28.62, 77.21)])

        responders, source = await ResolutionOrchestrator(
            classifier, [directory, knowledge, seeded]
        ).find_responders("medical", DELHI)

        assert source == ResponderSource.PLACES
        assert [r.place_id for r in responders] == ["places:a"]
        assert (directory.calls, knowledge.calls, seeded.calls) == (1, 0, 0)

    async def test_empty_tier_falls_through(self, classifier) -> None:
        directory = FakeResolver(ResponderSource.PLACES)
        knowledge = FakeResolver(ResponderSource.AI, [_candidate("b", None, None, source=ResponderSource.AI, estimate=1.5)])
        seeded = FakeResolver(ResponderSource.SEED, [_candidate("c", 28.62, 77.21)])

        responders, source = await ResolutionOrchestrator(
            classifier, [directory, knowledge, seeded]
        ).find_responders("medical", DELHI)

        assert source == ResponderSource.AI
        assert responders[0].place_id == "ai:b"
        assert (directory.calls, knowledge.calls, seeded.calls) == (1, 1, 0)

    async def test_raising_tier_treated_as_empty(self, classifier) -> None:
        directory = FakeResolver(ResponderSource.PLACES, error=RuntimeError("boom"))
        seeded = FakeResolver(ResponderSource.SEED, [_candidate("c", 28.62, 77.21)])

        _, source = await ResolutionOrchestrator(classifier, [directory, seeded]).find_responders("police", DELHI)

        assert source == ResponderSource.SEED

    async def test_all_empty_raises(self, classifier) -> None:
        orchestrator = ResolutionOrchestrator(
            classifier, [FakeResolver(ResponderSource.PLACES), FakeResolver(ResponderSource.SEED)]
        )
        with pytest.raises(ResponderResolutionError):
            await orchestrator.find_responders("medical", DELHI)

    @pytest.mark.parametrize("limit", [0, -1, 11])
    async def test_limit_out_of_range(self, classifier, limit: int) -> None:
        orchestrator = ResolutionOrchestrator(classifier, [FakeResolver(ResponderSource.SEED)])
        with pytest.raises(ValueError):
            await orchestrator.find_responders("medical", DELHI, limit)

    def test_requires_a_tier(self, classifier) -> None:
        with pytest.raises(ValueError):
            ResolutionOrchestrator(classifier, [])


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


class TestNormalize:
    def test_ranked_sorted_rounded_and_truncated(self) -> None:
        candidates = [
            _candidate("far", 28.70, 77.30),
            _candidate("near", 28.615, 77.21),
            _candidate("mid", 28.64, 77.23),
            _candidate("farther", 28.80, 77.40),
        ]
        responders = normalize(candidates, "medical", DELHI, 3)

        assert [r.place_id for r in responders] == ["places:near", "places:mid", "places:far"]
        assert [r.priority for r in responders] == [1, 2, 3]
        distances = [r.distance for r in responders]
        assert distances == sorted(distances)
        assert all(d == round(d, 1) for d in distances)
        assert all(r.type == "medical" for r in responders)

    def test_ai_candidate_without_location(self) -> None:
        responders = normalize(
            [
                _candidate("x", None, None, source=ResponderSource.AI, estimate=2.46),
                _candidate("y", None, None, source=ResponderSource.AI, estimate=-4.0),
                _candidate("z", None, None, source=ResponderSource.AI),
            ],
            "police",
            DELHI,
            3,
        )
        by_id = {r.place_id: r for r in responders}
        assert by_id["ai:x"].distance == 2.5
        assert by_id["ai:y"].distance == 0.0
        assert by_id["ai:z"].distance == 0.0
        assert by_id["ai:x"].location == DELHI
        assert [r.priority for r in responders] == [1, 2, 3]

    def test_ai_coordinates_override_model_estimate(self) -> None:
        [responder] = normalize(
            [_candidate("x", 28.6304, 77.2177, source=ResponderSource.AI, estimate=50.0)],
            "police",
            DELHI,
            3,
        )
        assert responder.distance == 2.0


# ---------------------------------------------------------------------------
# End-to-end with real tiers
# ---------------------------------------------------------------------------


def _real_tiers(fake_llm, seed_data, *, knowledge_llm=None):
    return [
        PlacesDirectoryResolver(api_key=""),
        KnowledgeResolver(knowledge_llm or fake_llm(configured=False)),
        SeededResponderResolver(seed_data),
    ]


class TestResolveResponders:
    async def test_delhi_police_from_seed(self, classifier, fake_llm, seed_data) -> None:
        orchestrator = ResolutionOrchestrator(classifier, _real_tiers(fake_llm, seed_data))
        result = await orchestrator.resolve_responders("Kisi ne mera bag chura liya", DELHI)

        assert result.categorization.category == EmergencyCategory.POLICE
        assert result.source == ResponderSource.SEED
        assert [r.name for r in result.responders] == [
            "Delhi Police Headquarters",
            "Connaught Place Police Station",
            "Saket Police Station",
        ]
        assert [r.place_id for r in result.responders] == [
            "seed:police-hq",
            "seed:cp-police",
            "seed:saket-police",
        ]
        assert [r.distance for r in result.responders] == pytest.approx([2.0, 2.2, 10.0], abs=0.11)
        assert all(r.type == "police" for r in result.responders)

    async def test_malformed_ai_reply_falls_through_to_seed(self, classifier, fake_llm, seed_data) -> None:
        knowledge_llm = fake_llm(text_replies=["New Delhi, Delhi", "Sorry, here you go: [oops"])
        orchestrator = ResolutionOrchestrator(
            classifier, _real_tiers(fake_llm, seed_data, knowledge_llm=knowledge_llm)
        )
        result = await orchestrator.resolve_responders("help", DELHI)

        assert result.source == ResponderSource.SEED
        assert len(knowledge_llm.text_calls) == 2

    async def test_classifier_failure_uses_medical_seed(self, fake_llm, seed_data) -> None:
        classifier = CategoryClassifier(fake_llm(error=RuntimeError("down")))
        orchestrator = ResolutionOrchestrator(classifier, _real_tiers(fake_llm, seed_data))
        result = await orchestrator.resolve_responders("???", DELHI, limit=2)

        assert result.categorization.category == EmergencyCategory.GENERAL
        assert [r.place_id for r in result.responders] == ["seed:aiims-delhi", "seed:safdarjung"]
        assert all(r.type == "general" for r in result.responders)
