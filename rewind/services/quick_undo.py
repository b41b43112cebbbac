"""
Annulation rapide / Quick-undo log.

Journal secondaire a duree de vie limitee, independant de l'historique des
changements. Une entree expiree ou consommee est inerte ; le balayage ne fait
que recuperer la place.
Secondary, time-bounded log independent of the change history. An expired or
consumed entry is inert; the sweep only reclaims storage.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rewind.config import settings
from rewind.exceptions import ConflictError, NotFoundError, PersistenceError, RewindError, ValidationError
from rewind.models.change import Operation
from rewind.models.undo_log import UndoLogEntry
from rewind.services.audit_trail import AuditTrail
from rewind.services.recorder import parse_operation
from rewind.services.restore import RestoreDispatcher
from rewind.services.snapshot import SnapshotSerializer, decode_record, encode_record
from rewind.utils.clock import utcnow

logger = logging.getLogger("rewind.quick_undo")


@dataclass(frozen=True)
class QuickUndoResult:
    status: str
    entity_type: str
    entity_id: str


class QuickUndoLog:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        serializer: SnapshotSerializer,
        dispatcher: RestoreDispatcher,
        audit: AuditTrail,
        default_ttl: timedelta = timedelta(minutes=settings.QUICK_UNDO_TTL_MINUTES),
        list_limit: int = settings.QUICK_UNDO_LIST_LIMIT,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._serializer = serializer
        self._dispatcher = dispatcher
        self._audit = audit
        self.default_ttl = default_ttl
        self.list_limit = list_limit
        self._clock = clock

    async def stage(
        self,
        actor: str,
        action: str,
        entity_type: str,
        entity_id: str,
        ttl: timedelta | None = None,
        operation: str | Operation = Operation.UPDATE,
        session: AsyncSession | None = None,
    ) -> int:
        """Prendre un instantane avant l'action / Snapshot the entity before the action.

        Pour `create`, appeler apres la creation : l'annulation supprimera.
        For `create`, call after the creation: the quick undo deletes it.
        """
        try:
            if session is not None:
                return await self._stage(session, actor, action, entity_type, entity_id, ttl, operation)
            async with self._session_factory() as own, own.begin():
                return await self._stage(own, actor, action, entity_type, entity_id, ttl, operation)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"staging undo for {entity_type} {entity_id} failed: {exc}") from exc

    async def _stage(
        self,
        session: AsyncSession,
        actor: str,
        action: str,
        entity_type: str,
        entity_id: str,
        ttl: timedelta | None,
        operation: str | Operation,
    ) -> int:
        ttl = ttl if ttl is not None else self.default_ttl
        if ttl <= timedelta(0):
            raise ValidationError("ttl must be positive")
        if not actor or not action:
            raise ValidationError("actor and action are required")
        op = parse_operation(operation)

        snapshot = await self._serializer.snapshot(session, entity_type, entity_id)
        now = self._clock()
        entry = UndoLogEntry(
            actor=actor,
            action=action,
            entity_type=self._serializer.registry.canonical(entity_type),
            entity_id=str(entity_id),
            operation=op.value,
            previous_state=encode_record(snapshot),
            created_at=now,
            expires_at=now + ttl,
            consumed=False,
        )
        session.add(entry)
        await session.flush()
        return entry.id

    async def list_entries(self, actor: str, limit: int | None = None) -> list[UndoLogEntry]:
        """Entrees actives de l'acteur / The actor's live entries (not expired, not consumed)."""
        if limit is None or limit <= 0:
            limit = self.list_limit
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(UndoLogEntry)
                    .where(
                        UndoLogEntry.actor == actor,
                        UndoLogEntry.expires_at > self._clock(),
                        UndoLogEntry.consumed.is_(False),
                    )
                    .order_by(UndoLogEntry.created_at.desc(), UndoLogEntry.id.desc())
                    .limit(limit)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"listing undo entries failed: {exc}") from exc

    async def perform(self, entry_id: int, actor: str) -> QuickUndoResult:
        """Executer l'annulation, revalidee a l'appel / Perform the undo, re-validated at call time."""
        try:
            async with self._session_factory() as session, session.begin():
                result = await self._perform(session, entry_id, actor)
        except SQLAlchemyError as exc:
            logger.error("Quick undo %s failed: %s", entry_id, exc)
            raise PersistenceError(f"quick undo {entry_id} failed: {exc}") from exc

        logger.info("%s quick-undid %s %s (entry %s)", actor, result.entity_type, result.entity_id, entry_id)
        return result

    async def _perform(self, session: AsyncSession, entry_id: int, actor: str) -> QuickUndoResult:
        entry = (await session.execute(
            select(UndoLogEntry)
            .where(UndoLogEntry.id == entry_id, UndoLogEntry.actor == actor)
            .with_for_update()
        )).scalar_one_or_none()
        if entry is None:
            raise NotFoundError("undo entry not found")
        if entry.consumed:
            raise ConflictError("undo entry already used")
        now = self._clock()
        if entry.expires_at <= now:
            raise ConflictError("undo entry expired")

        operation = parse_operation(entry.operation)
        try:
            if operation is Operation.CREATE:
                await self._dispatcher.delete(session, entry.entity_type, entry.entity_id)
            else:
                record = decode_record(entry.previous_state)
                await self._dispatcher.restore(session, entry.entity_type, entry.entity_id, record)
        except NotFoundError as exc:
            consumed = await session.scalar(select(UndoLogEntry.consumed).where(UndoLogEntry.id == entry.id))
            if consumed:
                raise ConflictError("undo entry already used") from exc
            raise NotFoundError(
                f"quick undo of {entry.action} on {entry.entity_type} {entry.entity_id} failed: {exc.message}"
            ) from exc
        except RewindError as exc:
            raise type(exc)(
                f"quick undo of {entry.action} on {entry.entity_type} {entry.entity_id} failed: {exc.message}"
            ) from exc

        marked = await session.execute(
            update(UndoLogEntry)
            .where(
                UndoLogEntry.id == entry.id,
                UndoLogEntry.consumed.is_(False),
                UndoLogEntry.expires_at > now,
            )
            .values(consumed=True)
            .execution_options(synchronize_session=False)
        )
        if marked.rowcount != 1:
            raise ConflictError("undo entry already used")

        await self._audit.append(
            session, actor, "quick_undo", entry.entity_type, entry.entity_id,
            f"Undid {entry.action} on {entry.entity_type} {entry.entity_id}",
        )
        return QuickUndoResult(status="restored", entity_type=entry.entity_type, entity_id=entry.entity_id)

    async def sweep(self) -> int:
        """Supprimer les entrees expirees / Delete expired rows. Returns the number removed."""
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    delete(UndoLogEntry).where(UndoLogEntry.expires_at <= self._clock())
                )
                removed = result.rowcount
        except SQLAlchemyError as exc:
            raise PersistenceError(f"undo log sweep failed: {exc}") from exc
        if removed:
            logger.info("[cleanup] %d expired undo entries removed", removed)
        return removed

    async def run_sweeper(self, interval_seconds: float = settings.QUICK_UNDO_SWEEP_INTERVAL_SECONDS) -> None:
        """Boucle de nettoyage periodique / Periodic cleanup loop (cancel to stop)."""
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.sweep()
            except PersistenceError:
                logger.exception("Undo log sweep failed")
