"""Rakshak service layer -- Gemini, categorization, responder tiers, storage."""

from __future__ import annotations

from src.services.categorizer import CategoryClassifier
from src.services.geo import distance_km, haversine_km
from src.services.llm import LLMNotConfiguredError, LLMResult, LLMService
from src.services.storage import AlertStore, InMemoryRepository, Repository, UserStore

__all__ = [
    "AlertStore",
    "CategoryClassifier",
    "InMemoryRepository",
    "LLMNotConfiguredError",
    "LLMResult",
    "LLMService",
    "Repository",
    "UserStore",
    "distance_km",
    "haversine_km",
]
