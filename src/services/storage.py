"""User and alert stores behind an injectable repository interface.

The default backend is a process-local dict; anything satisfying
:class:`Repository` (for example a database-backed implementation) can
be injected instead without touching the API layer.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar, runtime_checkable

import structlog

from src.models.records import Alert, User

if TYPE_CHECKING:
    from src.models.records import AlertCreate, UserCreate, UserUpdate

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Repository protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class Repository(Protocol[T]):
    """Async key/value record store."""

    async def get(self, key: str) -> T | None: ...

    async def put(self, key: str, value: T) -> None: ...

    async def list(self) -> list[T]: ...


class InMemoryRepository(Generic[T]):
    """Dict-backed repository.

    Guarded by an :class:`asyncio.Lock`, which is sufficient for a
    single-process deployment.  Insertion order is preserved.
    """

    __slots__ = ("_items", "_lock")

    def __init__(self) -> None:
        self._items: dict[str, T] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> T | None:
        return self._items.get(key)

    async def put(self, key: str, value: T) -> None:
        async with self._lock:
            self._items[key] = value

    async def list(self) -> list[T]:
        return list(self._items.values())

    @property
    def size(self) -> int:
        return len(self._items)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class UserStore:
    """Create, read and partially update user profiles."""

    __slots__ = ("_repo",)

    def __init__(self, repository: Repository[User] | None = None) -> None:
        self._repo: Repository[User] = repository or InMemoryRepository()

    async def create(self, data: UserCreate) -> User:
        user = User(**data.model_dump())
        await self._repo.put(user.id, user)
        logger.info("storage.user_created", user_id=user.id)
        return user

    async def get(self, user_id: str) -> User | None:
        return await self._repo.get(user_id)

    async def update(self, user_id: str, changes: UserUpdate) -> User | None:
        """Apply the fields set on *changes*; ``None`` if the user is unknown."""
        existing = await self._repo.get(user_id)
        if existing is None:
            return None

        merged = existing.model_dump()
        merged.update(changes.model_dump(exclude_unset=True))
        updated = User.model_validate(merged)
        await self._repo.put(user_id, updated)
        logger.info("storage.user_updated", user_id=user_id, fields=sorted(changes.model_fields_set))
        return updated


class AlertStore:
    """Create, list and transition emergency alerts."""

    __slots__ = ("_repo",)

    def __init__(self, repository: Repository[Alert] | None = None) -> None:
        self._repo: Repository[Alert] = repository or InMemoryRepository()

    async def create(self, data: AlertCreate) -> Alert:
        alert = Alert(**data.model_dump())
        await self._repo.put(alert.id, alert)
        logger.info(
            "storage.alert_created",
            alert_id=alert.id,
            user_id=alert.user_id,
            category=alert.category,
        )
        return alert

    async def get(self, alert_id: str) -> Alert | None:
        return await self._repo.get(alert_id)

    async def list(self) -> list[Alert]:
        return await self._repo.list()

    async def list_by_user(self, user_id: str) -> list[Alert]:
        return [alert for alert in await self._repo.list() if alert.user_id == user_id]

    async def update_status(self, alert_id: str, status: str) -> Alert | None:
        """Set the alert's status; ``None`` if the alert is unknown."""
        existing = await self._repo.get(alert_id)
        if existing is None:
            return None

        updated = existing.model_copy(update={"status": status})
        await self._repo.put(alert_id, updated)
        logger.info("storage.alert_status_updated", alert_id=alert_id, status=status)
        return updated
