"""
Annulation / refaire / Undo processor.

Une entree passe de Active (consumed=False) a Consumed, une seule fois.
L'annulation est enregistree comme une nouvelle entree inverse : annuler
cette entree revient a refaire.
An entry moves from Active (consumed=False) to Consumed exactly once. The
reversal is recorded as a new inverse entry: undoing that entry is a redo.

Chargement, restauration, marquage et entree inverse forment une seule
transaction.
Load, restoration, marking and the inverse entry form one transaction.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rewind.exceptions import ConflictError, NotFoundError, PersistenceError, RewindError, ValidationError
from rewind.models.change import ChangeEntry, Operation
from rewind.services.audit_trail import AuditTrail
from rewind.services.recorder import ChangeRecorder, parse_operation
from rewind.services.restore import RestoreDispatcher
from rewind.services.snapshot import decode_record

logger = logging.getLogger("rewind.undo")


@dataclass(frozen=True)
class UndoResult:
    status: str
    entity_type: str
    entity_id: str
    operation: str
    redo_id: int


class UndoProcessor:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: RestoreDispatcher,
        recorder: ChangeRecorder,
        audit: AuditTrail,
        allow_admin_override: bool = False,
    ):
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._recorder = recorder
        self._audit = audit
        self._allow_admin_override = allow_admin_override

    async def undo(self, change_id: int, actor: str, is_superadmin: bool = False) -> UndoResult:
        """Annuler une entree du journal / Undo one change-log entry."""
        if isinstance(change_id, bool) or not isinstance(change_id, int) or change_id <= 0:
            raise ValidationError("invalid change id")

        try:
            async with self._session_factory() as session, session.begin():
                result = await self._undo(session, change_id, actor, is_superadmin)
        except SQLAlchemyError as exc:
            logger.error("Undo of change %s failed: %s", change_id, exc)
            raise PersistenceError(f"undo of change {change_id} failed: {exc}") from exc

        logger.info(
            "%s undid %s on %s %s (change %s, redo %s)",
            actor, result.operation, result.entity_type, result.entity_id, change_id, result.redo_id,
        )
        return result

    async def _undo(self, session: AsyncSession, change_id: int, actor: str, is_superadmin: bool) -> UndoResult:
        query = select(ChangeEntry).where(ChangeEntry.id == change_id).with_for_update()
        if not (is_superadmin and self._allow_admin_override):
            query = query.where(ChangeEntry.actor == actor)
        entry = (await session.execute(query)).scalar_one_or_none()
        if entry is None:
            raise NotFoundError("change not found")
        if entry.consumed:
            raise ConflictError("change already undone")

        operation = parse_operation(entry.operation)
        try:
            await self._apply_inverse(session, entry, operation)
        except NotFoundError as exc:
            # Un appel concurrent a pu gagner entre-temps / A concurrent caller may have won meanwhile
            consumed = await session.scalar(select(ChangeEntry.consumed).where(ChangeEntry.id == entry.id))
            if consumed:
                raise ConflictError("change already undone") from exc
            raise NotFoundError(
                f"undo of {operation.value} on {entry.entity_type} {entry.entity_id} failed: {exc.message}"
            ) from exc
        except RewindError as exc:
            raise type(exc)(
                f"undo of {operation.value} on {entry.entity_type} {entry.entity_id} failed: {exc.message}"
            ) from exc

        # Compare-and-set : un seul appel concurrent gagne / Only one concurrent caller wins
        marked = await session.execute(
            update(ChangeEntry)
            .where(ChangeEntry.id == entry.id, ChangeEntry.consumed.is_(False))
            .values(consumed=True)
            .execution_options(synchronize_session=False)
        )
        if marked.rowcount != 1:
            raise ConflictError("change already undone")

        # Avant / apres inverses pour permettre de refaire / Swapped before/after so the undo can be redone
        redo_id = await self._recorder.record(
            session,
            actor,
            entry.entity_type,
            entry.entity_id,
            operation.inverse,
            before=entry.after_state,
            after=entry.before_state,
        )

        await self._audit.append(
            session, actor, "undo", entry.entity_type, entry.entity_id,
            f"Undid {operation.value} on {entry.entity_type} {entry.entity_id}",
        )
        return UndoResult(
            status="undone",
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            operation=operation.value,
            redo_id=redo_id,
        )

    async def _apply_inverse(self, session: AsyncSession, entry: ChangeEntry, operation: Operation) -> None:
        if operation is Operation.CREATE:
            await self._dispatcher.delete(session, entry.entity_type, entry.entity_id)
        else:
            # update et delete : remettre l'etat precedent / update and delete: put the prior state back
            record = decode_record(entry.before_state)
            await self._dispatcher.restore(session, entry.entity_type, entry.entity_id, record)
