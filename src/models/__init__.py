from src.models.emergency import (
    DEFAULT_SUGGESTED_ACTION,
    CamelModel,
    Coordinate,
    EmergencyCategorization,
    ResolutionResult,
    Responder,
    ResponderCandidate,
)
from src.models.enums import AlertStatus, EmergencyCategory, ResponderSource, Severity
from src.models.records import (
    Alert,
    AlertCreate,
    AlertStatusUpdate,
    EmergencyContact,
    Location,
    User,
    UserCreate,
    UserUpdate,
)

__all__ = [
    "DEFAULT_SUGGESTED_ACTION",
    "Alert",
    "AlertCreate",
    "AlertStatus",
    "AlertStatusUpdate",
    "CamelModel",
    "Coordinate",
    "EmergencyCategorization",
    "EmergencyCategory",
    "EmergencyContact",
    "Location",
    "ResolutionResult",
    "Responder",
    "ResponderCandidate",
    "ResponderSource",
    "Severity",
    "User",
    "UserCreate",
    "UserUpdate",
]
