"""Responder tiers: Places directory, Gemini knowledge search, seeded dataset."""

from __future__ import annotations

from src.services.responders.base import ResponderResolver, candidate_distance_km, nearest
from src.services.responders.directory import PlacesDirectoryResolver
from src.services.responders.knowledge import KnowledgeResolver
from src.services.responders.seeded import SeededResponderResolver

__all__ = [
    "KnowledgeResolver",
    "PlacesDirectoryResolver",
    "ResponderResolver",
    "SeededResponderResolver",
    "candidate_distance_km",
    "nearest",
]
