"""Seed data loading for the offline responder tier.

Loads the bundled ``delhi_responders.json`` file into validated
:class:`ResponderCandidate` instances keyed by category.  Designed to run
once at application startup; the result is injected into
:class:`~src.services.responders.seeded.SeededResponderResolver` and never
mutated afterwards.
"""

from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

import structlog

from src.models.emergency import Coordinate, ResponderCandidate
from src.models.enums import EmergencyCategory, ResponderSource

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

_DATA_DIR: Path = Path(__file__).resolve().parent / "responders"
_SEED_RESPONDERS_PATH: Path = _DATA_DIR / "delhi_responders.json"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_seed_responders(
    path: Path | None = None,
) -> Mapping[str, tuple[ResponderCandidate, ...]]:
    """Load the seeded responder dataset from a JSON file.

    Parameters
    ----------
    path:
        Path to the JSON file.  Defaults to the bundled
        ``delhi_responders.json``.

    Returns
    -------
    Mapping[str, tuple[ResponderCandidate, ...]]
        Read-only mapping from category value to its responders.

    Raises
    ------
    FileNotFoundError
        If the JSON file does not exist.
    KeyError
        If an entry lacks a required field.
    ValueError
        If an entry fails validation, or a required category is missing
        or empty.
    """
    file_path = path or _SEED_RESPONDERS_PATH

    if not file_path.exists():
        raise FileNotFoundError(f"Seed responder file not found: {file_path}")

    with file_path.open("r", encoding="utf-8") as f:
        raw: dict[str, list[dict]] = json.load(f)

    if not isinstance(raw, dict):
        raise ValueError("Seed responder file must contain a JSON object")

    dataset: dict[str, tuple[ResponderCandidate, ...]] = {}
    for category, entries in raw.items():
        dataset[category] = tuple(_parse_responder(entry) for entry in entries)

    required = [c.value for c in EmergencyCategory if c is not EmergencyCategory.GENERAL]
    missing = [c for c in required if not dataset.get(c)]
    if missing:
        raise ValueError(f"Seed responder file has no entries for: {', '.join(missing)}")

    logger.info(
        "seed.loaded_responders",
        categories=len(dataset),
        count=sum(len(v) for v in dataset.values()),
        source=str(file_path),
    )
    return MappingProxyType(dataset)


def _parse_responder(raw: dict) -> ResponderCandidate:
    """Parse a raw JSON dict into a validated :class:`ResponderCandidate`."""
    return ResponderCandidate(
        name=raw["name"],
        address=raw["address"],
        location=Coordinate(lat=raw["lat"], lng=raw["lng"]),
        phone=raw.get("phone"),
        rating=raw.get("rating"),
        hours=raw.get("hours"),
        source_id=raw["id"],
        source=ResponderSource.SEED,
    )
