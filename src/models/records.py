"""User and alert records kept by the in-memory stores.

``*Create`` models validate request bodies; the record models add the
server-generated id and timestamp.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any, Final
from uuid import uuid4

from pydantic import Field, field_validator

from src.models.emergency import CamelModel, Responder
from src.models.enums import AlertStatus

_EMAIL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_email(value: str | None) -> str | None:
    # The web client submits "" when the field is left blank.
    if value is None or value == "":
        return value
    if not _EMAIL_PATTERN.match(value):
        raise ValueError("invalid email address")
    return value


class EmergencyContact(CamelModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    relationship: str = Field(min_length=1)


class Location(CamelModel):
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)
    address: str | None = None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserCreate(CamelModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    email: str | None = None
    medical_info: str | None = None
    emergency_contacts: list[EmergencyContact] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def check_email_format(cls, value: str | None) -> str | None:
        return _check_email(value)


class UserUpdate(CamelModel):
    """Partial update; only fields present in the request are applied."""

    name: str | None = Field(default=None, min_length=1)
    phone: str | None = Field(default=None, min_length=1)
    email: str | None = None
    medical_info: str | None = None
    emergency_contacts: list[EmergencyContact] | None = None

    @field_validator("email")
    @classmethod
    def check_email_format(cls, value: str | None) -> str | None:
        return _check_email(value)

    @field_validator("name", "phone", "emergency_contacts")
    @classmethod
    def check_not_null(cls, value: Any) -> Any:
        # Omitting a field leaves it unchanged; null is not a valid value.
        if value is None:
            raise ValueError("field may be omitted but not null")
        return value


class User(UserCreate):
    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------


class AlertCreate(CamelModel):
    user_id: str | None = None
    message: str = Field(min_length=1)
    category: str = Field(min_length=1)
    location: Location
    responders: list[Responder] = Field(default_factory=list)


class AlertStatusUpdate(CamelModel):
    status: str = Field(min_length=1)

    @field_validator("status")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("status must not be blank")
        return value


class Alert(AlertCreate):
    id: str = Field(default_factory=lambda: str(uuid4()))
    status: str = AlertStatus.ACTIVE.value
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
