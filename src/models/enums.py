from __future__ import annotations

from enum import StrEnum


class EmergencyCategory(StrEnum):
    __slots__ = ()

    MEDICAL = "medical"
    POLICE = "police"
    MENTAL_HEALTH = "mental_health"
    DISASTER = "disaster"
    FINANCE = "finance"
    GENERAL = "general"


class Severity(StrEnum):
    __slots__ = ()

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ResponderSource(StrEnum):
    """Tier that produced a responder candidate.

    The value doubles as the ``placeId`` prefix on normalized responders.
    """

    __slots__ = ()

    PLACES = "places"
    AI = "ai"
    SEED = "seed"


class AlertStatus(StrEnum):
    __slots__ = ()

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
