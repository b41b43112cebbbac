"""
Enregistrement des changements / Change recorder.

Appele par chaque handler metier qui modifie une entite suivie, dans sa propre
transaction : l'entree existe des le retour de l'appel.
Called by every business handler that mutates a tracked entity, inside its own
transaction: the entry exists as soon as the call returns.
"""

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewind.config import settings
from rewind.exceptions import NotFoundError, PersistenceError, ValidationError
from rewind.models.change import ChangeEntry, Operation
from rewind.services.change_feed import ChangeFeedPublisher
from rewind.services.registry import EntityRegistry
from rewind.services.snapshot import decode_record, encode_record, to_record

logger = logging.getLogger("rewind.recorder")

Snapshot = Mapping[str, Any] | str | None


def parse_operation(operation: str | Operation) -> Operation:
    try:
        return Operation(operation)
    except ValueError:
        raise ValidationError(f"unsupported operation: {operation}") from None


def _snapshot_text(snapshot: Snapshot) -> str | None:
    """JSON deja encode ou dict canonique / Pre-encoded JSON or canonical dict."""
    if snapshot is None or snapshot == "":
        return None
    if isinstance(snapshot, str):
        # Valider sans reformater / Validate without re-encoding
        decode_record(snapshot)
        return snapshot
    if not isinstance(snapshot, Mapping):
        raise ValidationError("snapshot must be a mapping or JSON text")
    return encode_record(snapshot)


class ChangeRecorder:
    def __init__(
        self,
        registry: EntityRegistry,
        feed: ChangeFeedPublisher | None = None,
        default_limit: int = settings.RECENT_CHANGES_DEFAULT_LIMIT,
        max_limit: int = settings.RECENT_CHANGES_MAX_LIMIT,
    ):
        self.registry = registry
        self.feed = feed
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def record(
        self,
        session: AsyncSession,
        actor: str,
        entity_type: str,
        entity_id: str,
        operation: str | Operation,
        before: Snapshot = None,
        after: Snapshot = None,
    ) -> int:
        """Ajouter une entree au journal / Append one entry to the change log. Returns its id."""
        op = parse_operation(operation)
        if not actor:
            raise ValidationError("actor is required")
        if not entity_type or entity_id is None or str(entity_id) == "":
            raise ValidationError("entity type and id are required")

        before_text = _snapshot_text(before)
        after_text = _snapshot_text(after)
        if op is Operation.CREATE and (before_text or not after_text):
            raise ValidationError("create requires an after snapshot and no before snapshot")
        if op is Operation.DELETE and (after_text or not before_text):
            raise ValidationError("delete requires a before snapshot and no after snapshot")
        if op is Operation.UPDATE and not (before_text and after_text):
            raise ValidationError("update requires both before and after snapshots")

        entry = ChangeEntry(
            entity_type=self.registry.canonical(entity_type),
            entity_id=str(entity_id),
            operation=op.value,
            before_state=before_text,
            after_state=after_text,
            actor=actor,
            consumed=False,
        )
        session.add(entry)
        try:
            await session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"recording {op.value} on {entity_type} {entity_id} failed: {exc}") from exc

        if self.feed is not None:
            self.feed.queue(session, {
                "type": "change_recorded",
                "id": entry.id,
                "action": entry.operation,
                "entity_type": entry.entity_type,
                "entity_id": entry.entity_id,
            })
        return entry.id

    async def record_values(
        self,
        session: AsyncSession,
        actor: str,
        entity_type: str,
        entity_id: str,
        operation: str | Operation,
        before: Any = None,
        after: Any = None,
    ) -> int:
        """Variante structuree (dict, pydantic, ORM) / Structured variant (mapping, pydantic, ORM)."""
        return await self.record(
            session, actor, entity_type, entity_id, operation, to_record(before), to_record(after)
        )

    async def list_recent(self, session: AsyncSession, actor: str, limit: int | None = None) -> list[ChangeEntry]:
        """Derniers changements de l'acteur / The actor's most recent changes, newest first."""
        if limit is None or limit <= 0:
            limit = self.default_limit
        limit = min(limit, self.max_limit)
        result = await session.execute(
            select(ChangeEntry)
            .where(ChangeEntry.actor == actor)
            .order_by(ChangeEntry.created_at.desc(), ChangeEntry.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get(self, session: AsyncSession, change_id: int) -> ChangeEntry:
        entry = await session.get(ChangeEntry, change_id)
        if entry is None:
            raise NotFoundError("change not found")
        return entry
