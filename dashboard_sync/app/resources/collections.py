"""
Entity collections: list resources with optimistic add, update and delete.

Each write goes through ``OptimisticUpdater`` against the collection's key:
the list changes locally first, the data-access function runs once, and the
authoritative record is folded back in (or the local change undone). A
write that lands before the first load has been applied discards that load,
so the list is fetched again once the write settles.
"""

import uuid
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar

from shared.errors import NotFoundError, ValidationError

from ..cache.entry import Fetcher
from ..cache.store import CacheStore
from ..domain.aggregates import is_overdue
from ..domain.models import Entity, Project
from ..optimistic.coordinator import OptimisticUpdater
from .binding import ResourceBinding

E = TypeVar("E", bound=Entity)

TEMP_ID_PREFIX = "temp-"

CreateFn = Callable[[Dict[str, Any]], Awaitable[Any]]
UpdateFn = Callable[[str, Dict[str, Any]], Awaitable[Any]]
DeleteFn = Callable[[str], Awaitable[None]]


def temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def is_temp_id(entity_id: str) -> bool:
    return entity_id.startswith(TEMP_ID_PREFIX)


def _upsert(records: Optional[List[E]], record: E, replaces: Optional[str] = None) -> List[E]:
    """Replace the record with ``replaces`` (or the record's own id), else prepend."""
    records = list(records or [])
    target = replaces or record.id
    for index, existing in enumerate(records):
        if existing.id == target or existing.id == record.id:
            records[index] = record
            return records
    return [record] + records


def _without(records: Optional[List[E]], entity_id: str) -> List[E]:
    return [r for r in (records or []) if r.id != entity_id]


def _reinsert(records: Optional[List[E]], record: E, index: int) -> List[E]:
    records = _without(records, record.id)
    records.insert(min(index, len(records)), record)
    return records


class EntityCollection(ResourceBinding[List[E]]):
    """A list resource whose records can be written optimistically.

    Args:
        store: Shared cache store.
        key: Cache key of the list.
        fetcher: Loads the full list.
        model: Record type, used to build optimistic records on ``add``.
        create, update, delete: Remote writes; an operation without one is
            unsupported on this collection.
    """

    def __init__(
        self,
        store: CacheStore,
        key: str,
        fetcher: Fetcher,
        model: Type[E],
        ttl_seconds: Optional[float] = None,
        *,
        create: Optional[CreateFn] = None,
        update: Optional[UpdateFn] = None,
        delete: Optional[DeleteFn] = None,
        on_success: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ):
        super().__init__(store, key, fetcher, ttl_seconds)
        self.model = model
        self._create = create
        self._update = update
        self._delete = delete
        self.updater: OptimisticUpdater = OptimisticUpdater(store, on_success=on_success, on_error=on_error)

    @property
    def items(self) -> List[E]:
        return list(self.data or [])

    @property
    def is_updating(self) -> bool:
        return self.updater.is_updating

    def find(self, entity_id: str) -> Optional[E]:
        for record in self.items:
            if record.id == entity_id:
                return record
        return None

    def get(self, entity_id: str) -> E:
        record = self.find(entity_id)
        if record is None:
            raise NotFoundError(f"{self.model.__name__} not found", {"id": entity_id, "key": self.key})
        return record

    async def add(self, data: Dict[str, Any]) -> E:
        """Insert a record under a temporary id, then swap in the created one.

        Raises:
            WriteError: The create failed; the temporary record was removed.
        """
        create = self._require(self._create, "add")
        placeholder = self.model.model_validate({**data, "id": temp_id()})

        async def remote_write(_record: E) -> E:
            return await create(data)

        def rollback() -> None:
            self.store.mutate(self.key, lambda current: _without(current, placeholder.id))

        return await self._write(
            placeholder,
            remote_write,
            rollback,
            lambda current, record: _upsert(current, record, replaces=placeholder.id),
        )

    async def update(self, entity_id: str, changes: Dict[str, Any]) -> E:
        """Merge ``changes`` into a record locally, then write them.

        Raises:
            NotFoundError: No record with ``entity_id`` is cached.
            WriteError: The update failed; the previous record was restored.
        """
        update = self._require(self._update, "update")
        previous = self.get(entity_id)
        optimistic = previous.model_copy(update=changes)

        async def remote_write(_record: E) -> E:
            return await update(entity_id, changes)

        def rollback() -> None:
            self.store.mutate(self.key, lambda current: _upsert(current, previous))

        return await self._write(optimistic, remote_write, rollback, _upsert)

    async def delete(self, entity_id: str) -> None:
        """Remove a record locally, then delete it remotely.

        Raises:
            NotFoundError: No record with ``entity_id`` is cached.
            WriteError: The delete failed; the record is back at its old position.
        """
        delete = self._require(self._delete, "delete")
        previous = self.get(entity_id)
        index = next(i for i, r in enumerate(self.items) if r.id == entity_id)

        async def remote_write(_record: E) -> None:
            await delete(entity_id)

        def rollback() -> None:
            self.store.mutate(self.key, lambda current: _reinsert(current, previous, index))

        await self._write(previous, remote_write, rollback, lambda current, _value: _without(current, entity_id))

    async def _write(self, optimistic: Any, remote_write, rollback, apply) -> Any:
        try:
            return await self.updater.update(self.key, optimistic, remote_write, rollback, apply=apply)
        finally:
            if not self.entry.loaded:
                self.logger.info("Write settled before the first load, fetching again", key=self.key)
                self.invalidate()

    def _require(self, operation: Optional[Callable[..., Any]], name: str) -> Callable[..., Any]:
        if operation is None:
            raise ValidationError(f"Collection does not support {name}", details={"key": self.key})
        return operation


class ProjectCollection(EntityCollection[Project]):
    """Projects, with progress tracking and due-date views."""

    async def update_progress(self, project_id: str, actual_hours: float) -> Project:
        if actual_hours < 0:
            raise ValidationError("actual_hours cannot be negative", details={"id": project_id})
        return await self.update(project_id, {"actual_hours": actual_hours})

    def for_client(self, client_id: str) -> List[Project]:
        return [p for p in self.items if p.client_id == client_id]

    def overdue(self, today: Optional[date] = None) -> List[Project]:
        return [p for p in self.items if is_overdue(p, today)]
