"""
Ingestion and group services.

Every call opens its own session from the injected factory; nothing about events
or groups is cached between calls. The only coordination between concurrent
callers is the database transaction.
"""
import asyncio
import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from faultline.exceptions import EventValidationError
from faultline.kinds import EventKind
from faultline.models import GroupStatus
from faultline.projection import encode_side_channel, to_entity, to_group_entity
from faultline.schemas import StatsResponse
from faultline.stores import EventFilter, EventStore, GroupFilter, GroupStore, Page, storage_errors

Payload = Union[BaseModel, Mapping[str, Any]]


def _as_dict(payload: Payload) -> Dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump()
    return dict(payload)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == 0


async def _rollback(session: AsyncSession, cause: BaseException, log: logging.Logger) -> None:
    """
    Roll back after a failure. A failing rollback is logged; the caller
    re-raises the original exception.
    """
    try:
        await session.rollback()
    except (Exception, asyncio.CancelledError) as e:
        log.error(
            f"Rollback failed after {type(cause).__name__}: {str(cause)}; rollback error: {str(e)}",
            exc_info=True,
        )


class IngestionService:
    """
    Create, update, delete and query events of one kind.

    Args:
        kind: Event kind handled by this service
        session_factory: Factory of AsyncSession, one session per call
        events: Event store, defaults to EventStore(kind)
        groups: Group store, defaults to GroupStore(kind)
        logger: Logger, defaults to this module's logger
    """

    def __init__(
        self,
        kind: EventKind,
        session_factory: async_sessionmaker,
        events: Optional[EventStore] = None,
        groups: Optional[GroupStore] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.kind = kind
        self.session_factory = session_factory
        self.events = events or EventStore(kind)
        self.groups = groups or GroupStore(kind)
        self.logger = logger or logging.getLogger(__name__)

    def _encode(self, values: Dict[str, Any]) -> Dict[str, Any]:
        for field in self.kind.side_channel_fields:
            if field in values:
                values[field] = encode_side_channel(values[field])
        return values

    async def create(self, project_id: str, payload: Payload) -> BaseModel:
        """
        Store an event and bump its group in one transaction.

        Either both the group upsert and the event insert are committed, or
        neither is. Cancellation before commit rolls back as well.
        """
        raw = _as_dict(payload)
        values = self.kind.coerce({field: raw.get(field) for field in self.kind.payload_fields})
        values["project_id"] = project_id
        self.kind.check(values)
        self._encode(values)
        values["fingerprint"] = self.kind.fingerprint(values)

        record = self.kind.event_model(id=str(uuid.uuid4()), **values)

        async with self.session_factory() as session:
            try:
                await self.groups.upsert_increment(
                    session,
                    group_id=record.fingerprint,
                    project_id=project_id,
                    message=record.message,
                    discriminators=self.kind.discriminators(values),
                )
                await self.events.create(session, record)
                with storage_errors(f"commit {self.kind.name}"):
                    await session.commit()
            except (Exception, asyncio.CancelledError) as e:
                await _rollback(session, e, self.logger)
                raise

        self.logger.debug(
            f"Ingested {self.kind.name} {record.id} into group {record.fingerprint[:12]} (project={project_id})"
        )
        return to_entity(self.kind, record)

    async def update(self, event_id: str, payload: Payload) -> BaseModel:
        """
        Apply the non-empty fields of a partial update and recompute the fingerprint.

        The owning group is not touched: its counter and last_seen_at keep
        reflecting creations only.
        """
        raw = _as_dict(payload)
        changes = self.kind.coerce({
            field: raw.get(field)
            for field in self.kind.updatable_fields
            if not _is_empty(raw.get(field))
        })
        self._encode(changes)

        async with self.session_factory() as session:
            try:
                record = await self.events.get_by_id(session, event_id)
                merged = {**self.kind.snapshot(record), **changes}
                self.kind.check(merged)
                changes["fingerprint"] = self.kind.fingerprint(merged)

                await self.events.update(session, event_id, changes)
                with storage_errors(f"commit {self.kind.name} update"):
                    await session.refresh(record)
                    await session.commit()
            except (Exception, asyncio.CancelledError) as e:
                await _rollback(session, e, self.logger)
                raise

        self.logger.info(f"Updated {self.kind.name} {event_id} (fields: {', '.join(sorted(changes))})")
        return to_entity(self.kind, record)

    async def delete(self, event_id: str) -> None:
        """
        Remove an event. The group counter is not decremented.
        """
        async with self.session_factory() as session:
            try:
                await self.events.delete(session, event_id)
                with storage_errors(f"commit {self.kind.name} delete"):
                    await session.commit()
            except (Exception, asyncio.CancelledError) as e:
                await _rollback(session, e, self.logger)
                raise
        self.logger.info(f"Deleted {self.kind.name} {event_id}")

    async def get_by_id(self, event_id: str) -> BaseModel:
        async with self.session_factory() as session:
            record = await self.events.get_by_id(session, event_id)
        return to_entity(self.kind, record)

    async def get_all(self, flt: EventFilter, page: Page) -> Tuple[List[BaseModel], int]:
        async with self.session_factory() as session:
            records = await self.events.get_all(session, flt, page)
            total = await self.events.count(session, flt)
        return [to_entity(self.kind, record) for record in records], total

    async def get_stats(self, project_id: str, fingerprint: Optional[str] = None) -> StatsResponse:
        if not project_id:
            raise EventValidationError("project_id is required for stats")
        async with self.session_factory() as session:
            return await self.events.get_stats(session, project_id, fingerprint)


class GroupService:
    """
    Read access to groups of one kind, plus status triage.
    """

    def __init__(
        self,
        kind: EventKind,
        session_factory: async_sessionmaker,
        groups: Optional[GroupStore] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.kind = kind
        self.session_factory = session_factory
        self.groups = groups or GroupStore(kind)
        self.logger = logger or logging.getLogger(__name__)

    async def get_by_id(self, group_id: str) -> BaseModel:
        async with self.session_factory() as session:
            group = await self.groups.get_by_id(session, group_id)
        return to_group_entity(self.kind, group)

    async def get_all(self, flt: GroupFilter, page: Page) -> Tuple[List[BaseModel], int]:
        async with self.session_factory() as session:
            groups = await self.groups.get_all(session, flt, page)
            total = await self.groups.count(session, flt)
        return [to_group_entity(self.kind, group) for group in groups], total

    async def set_status(self, group_id: str, status: Union[GroupStatus, str]) -> BaseModel:
        try:
            status = GroupStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in GroupStatus)
            raise EventValidationError(f"invalid status {status!r}, expected one of {allowed}")

        async with self.session_factory() as session:
            try:
                await self.groups.set_status(session, group_id, status)
                group = await self.groups.get_by_id(session, group_id)
                with storage_errors(f"commit {self.kind.name} group status"):
                    await session.commit()
            except (Exception, asyncio.CancelledError) as e:
                await _rollback(session, e, self.logger)
                raise

        self.logger.info(f"{self.kind.name.capitalize()} group {group_id[:12]} marked {status.value}")
        return to_group_entity(self.kind, group)
