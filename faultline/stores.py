"""
Persistence of events and group aggregates.

Store methods take the caller's AsyncSession so that several writes can share
one transaction; they never commit.
"""
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional
from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from faultline.exceptions import NotFoundError, StorageError
from faultline.kinds import EventKind
from faultline.models import GroupStatus
from faultline.schemas import StatsResponse
from faultline.timeutil import DAY_MS, now_ms

logger = logging.getLogger(__name__)

SORT_ASC = "asc"
SORT_DESC = "desc"


@dataclass
class EventFilter:
    """Filter for event queries. Time bounds are inclusive, in milliseconds."""
    project_id: Optional[str] = None
    fingerprint: Optional[str] = None
    time_from: Optional[int] = None
    time_to: Optional[int] = None
    search: Optional[str] = None
    level: Optional[str] = None


@dataclass
class GroupFilter:
    """Filter for group queries. Time bounds apply to last_seen_at."""
    project_id: Optional[str] = None
    time_from: Optional[int] = None
    time_to: Optional[int] = None
    search: Optional[str] = None
    level: Optional[str] = None


@dataclass
class Page:
    limit: int = 50
    offset: int = 0
    sort: str = SORT_DESC


@contextmanager
def storage_errors(operation: str):
    """Wrap SQLAlchemy failures in StorageError with the failing operation."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Storage failure during '{operation}': {str(e)}", exc_info=True)
        raise StorageError(f"failed to {operation}: {e}") from e


def _order(column, sort: str):
    return column.asc() if sort == SORT_ASC else column.desc()


class EventStore:
    """
    Rows of one event table (errors or logs).
    """

    def __init__(self, kind: EventKind):
        self.kind = kind
        self.model = kind.event_model

    def _apply_filters(self, stmt, flt: EventFilter):
        model = self.model
        if flt.project_id:
            stmt = stmt.where(model.project_id == flt.project_id)
        if flt.fingerprint:
            stmt = stmt.where(model.fingerprint == flt.fingerprint)
        if flt.time_from:
            stmt = stmt.where(model.time >= flt.time_from)
        if flt.time_to:
            stmt = stmt.where(model.time <= flt.time_to)
        if flt.level and self.kind.has_field("level"):
            stmt = stmt.where(model.level == flt.level)
        if flt.search:
            stmt = stmt.where(model.message.icontains(flt.search, autoescape=True))
        return stmt

    async def create(self, session: AsyncSession, record: Any) -> Any:
        """
        Insert an event. Assigns id and server timestamps when absent.
        """
        if not record.id:
            record.id = str(uuid.uuid4())
        now = now_ms()
        record.created_at = now
        record.updated_at = now

        with storage_errors(f"create {self.kind.name}"):
            session.add(record)
            await session.flush()
        return record

    async def get_by_id(self, session: AsyncSession, event_id: str) -> Any:
        with storage_errors(f"get {self.kind.name} by id"):
            record = await session.get(self.model, event_id)
        if record is None:
            raise NotFoundError(self.kind.name, event_id)
        return record

    async def update(self, session: AsyncSession, event_id: str, values: Mapping[str, Any]) -> None:
        """
        Overwrite the given columns. Raises NotFoundError if no row matched.
        """
        stmt = (
            update(self.model)
            .where(self.model.id == event_id)
            .values(**values, updated_at=now_ms())
            .execution_options(synchronize_session=False)
        )
        with storage_errors(f"update {self.kind.name}"):
            result = await session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError(self.kind.name, event_id)

    async def delete(self, session: AsyncSession, event_id: str) -> None:
        stmt = delete(self.model).where(self.model.id == event_id)
        with storage_errors(f"delete {self.kind.name}"):
            result = await session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError(self.kind.name, event_id)

    async def get_all(self, session: AsyncSession, flt: EventFilter, page: Page) -> List[Any]:
        stmt = self._apply_filters(select(self.model), flt)
        stmt = stmt.order_by(_order(self.model.time, page.sort), self.model.id)
        stmt = stmt.limit(page.limit).offset(page.offset)
        with storage_errors(f"list {self.kind.name}s"):
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count(self, session: AsyncSession, flt: EventFilter) -> int:
        stmt = self._apply_filters(select(func.count()).select_from(self.model), flt)
        with storage_errors(f"count {self.kind.name}s"):
            result = await session.execute(stmt)
            return result.scalar_one()

    async def get_stats(
        self,
        session: AsyncSession,
        project_id: str,
        fingerprint: Optional[str] = None,
        now: Optional[int] = None,
    ) -> StatsResponse:
        """
        Count events whose time falls in the trailing 24h, 7d and 30d windows.
        """
        now = now if now is not None else now_ms()
        model = self.model
        day_from = now - DAY_MS
        week_from = now - 7 * DAY_MS
        month_from = now - 30 * DAY_MS

        def window(start):
            return func.coalesce(func.sum(case((model.time >= start, 1), else_=0)), 0)

        stmt = select(window(day_from), window(week_from), window(month_from)).where(
            model.project_id == project_id,
            model.time >= month_from,
        )
        if fingerprint:
            stmt = stmt.where(model.fingerprint == fingerprint)

        with storage_errors(f"get {self.kind.name} stats"):
            result = await session.execute(stmt)
            last24h, last7d, last30d = result.one()
        return StatsResponse(last24h=last24h, last7d=last7d, last30d=last30d)


class GroupStore:
    """
    Aggregate rows of one group table (error_groups or log_groups).
    """

    def __init__(self, kind: EventKind):
        self.kind = kind
        self.model = kind.group_model

    def _apply_filters(self, stmt, flt: GroupFilter):
        model = self.model
        if flt.project_id:
            stmt = stmt.where(model.project_id == flt.project_id)
        if flt.time_from:
            stmt = stmt.where(model.last_seen_at >= flt.time_from)
        if flt.time_to:
            stmt = stmt.where(model.last_seen_at <= flt.time_to)
        if flt.level and self.kind.has_field("level"):
            stmt = stmt.where(model.level == flt.level)
        if flt.search:
            stmt = stmt.where(model.message.icontains(flt.search, autoescape=True))
        return stmt

    def _insert(self, session: AsyncSession):
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise StorageError(f"atomic group upsert is not supported on {dialect}")
        return insert

    async def upsert_increment(
        self,
        session: AsyncSession,
        group_id: str,
        project_id: str,
        message: str,
        discriminators: Mapping[str, Any],
        now: Optional[int] = None,
    ) -> None:
        """
        Insert the group with counter 1, or bump counter and last_seen_at of the
        existing row in the same statement.

        Descriptive fields, status and first_seen_at of an existing group are
        left untouched.
        """
        now = now if now is not None else now_ms()
        table = self.model.__table__
        insert = self._insert(session)

        stmt = insert(table).values(
            id=group_id,
            project_id=project_id,
            message=message,
            first_seen_at=now,
            last_seen_at=now,
            counter=1,
            status=GroupStatus.UNRESOLVED.value,
            **discriminators,
        )
        # last_seen_at never moves backwards when commits land out of clock order
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.id],
            set_={
                "counter": table.c.counter + 1,
                "last_seen_at": case(
                    (stmt.excluded.last_seen_at > table.c.last_seen_at, stmt.excluded.last_seen_at),
                    else_=table.c.last_seen_at,
                ),
            },
        )
        with storage_errors(f"upsert {self.kind.name} group"):
            await session.execute(stmt)
        logger.debug(f"Upserted {self.kind.name} group {group_id[:12]} for project {project_id}")

    async def get_by_id(self, session: AsyncSession, group_id: str) -> Any:
        with storage_errors(f"get {self.kind.name} group by id"):
            group = await session.get(self.model, group_id, populate_existing=True)
        if group is None:
            raise NotFoundError(f"{self.kind.name} group", group_id)
        return group

    async def get_all(self, session: AsyncSession, flt: GroupFilter, page: Page) -> List[Any]:
        stmt = self._apply_filters(select(self.model), flt)
        stmt = stmt.order_by(_order(self.model.last_seen_at, page.sort), self.model.id)
        stmt = stmt.limit(page.limit).offset(page.offset)
        with storage_errors(f"list {self.kind.name} groups"):
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count(self, session: AsyncSession, flt: GroupFilter) -> int:
        stmt = self._apply_filters(select(func.count()).select_from(self.model), flt)
        with storage_errors(f"count {self.kind.name} groups"):
            result = await session.execute(stmt)
            return result.scalar_one()

    async def set_status(self, session: AsyncSession, group_id: str, status: GroupStatus) -> None:
        stmt = (
            update(self.model)
            .where(self.model.id == group_id)
            .values(status=status.value)
            .execution_options(synchronize_session=False)
        )
        with storage_errors(f"set {self.kind.name} group status"):
            result = await session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError(f"{self.kind.name} group", group_id)
