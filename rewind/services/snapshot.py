"""
Serialisation des instantanes / Snapshot serializer.

Un instantane canonique est un dict JSON-compatible (str / int / float / bool /
None). Les agregats y ajoutent leurs lignes enfants sous la cle reservee
`_lines`.
A canonical snapshot is a JSON-compatible dict. Aggregates embed their child
rows under the reserved `_lines` key.
"""

import json
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from pydantic import BaseModel
from sqlalchemy import inspect as sa_inspect, select
from sqlalchemy.exc import NoInspectionAvailable, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewind.exceptions import NotFoundError, PersistenceError, ValidationError
from rewind.services.catalog import SchemaCatalog
from rewind.services.registry import ChildCollection, EntityRegistry

CHILDREN_KEY = "_lines"

CanonicalRecord = dict[str, Any]


def _canonical_value(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return row_to_record(value)
    if isinstance(value, (list, tuple)):
        return [_canonical_value(item) for item in value]
    return value


def row_to_record(row: Mapping[str, Any]) -> CanonicalRecord:
    """Extraction generique d'une ligne / Generic record extraction from a row mapping."""
    return {str(key): _canonical_value(value) for key, value in row.items()}


def to_record(value: Any) -> CanonicalRecord | None:
    """Convertir une valeur structuree en instantane / Convert a structured value to a snapshot.

    Accepte dict, modele pydantic ou instance ORM / Accepts a mapping, a pydantic model or an ORM instance.
    """
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return row_to_record(value.model_dump(mode="json"))
    if isinstance(value, Mapping):
        return row_to_record(value)
    try:
        state = sa_inspect(value)
    except NoInspectionAvailable:
        raise ValidationError(f"cannot snapshot value of type {type(value).__name__}") from None
    return row_to_record({attr.key: getattr(value, attr.key) for attr in state.mapper.column_attrs})


def encode_record(record: Mapping[str, Any] | None) -> str | None:
    if not record:
        return None
    return json.dumps(record, ensure_ascii=False, sort_keys=True)


def decode_record(text: str | None) -> CanonicalRecord:
    """Relire un instantane stocke / Parse a stored snapshot.

    Leve ValidationError si vide ou illisible / Raises ValidationError when empty or unparsable.
    """
    if not text:
        raise ValidationError("empty snapshot")
    try:
        record = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"unparsable snapshot: {exc}") from exc
    if not isinstance(record, dict) or not record:
        raise ValidationError("snapshot must be a non-empty object")
    return record


class SnapshotSerializer:
    """Capture l'etat courant d'une entite / Captures an entity's current state. Read-only."""

    def __init__(self, registry: EntityRegistry, catalog: SchemaCatalog):
        self.registry = registry
        self.catalog = catalog

    async def snapshot(self, session: AsyncSession, entity_type: str, entity_id: str) -> CanonicalRecord:
        capabilities = self.registry.resolve(entity_type)
        try:
            if capabilities and capabilities.snapshot:
                return await capabilities.snapshot(self, session, entity_id)

            table_name = self.registry.canonical(entity_type)
            record = await self.fetch_row(session, table_name, entity_id)
            if capabilities and capabilities.children:
                parent_key = self.catalog.key_value(table_name, capabilities.key_column, entity_id)
                record[CHILDREN_KEY] = await self.fetch_children(session, capabilities.children, parent_key)
            return record
        except SQLAlchemyError as exc:
            raise PersistenceError(f"snapshot of {entity_type} {entity_id} failed: {exc}") from exc

    async def fetch_row(self, session: AsyncSession, table_name: str, entity_id: str) -> CanonicalRecord:
        table = self.catalog.table(table_name)
        key_column = self.registry.key_column(table_name)
        key = self.catalog.key_value(table_name, key_column, entity_id)
        result = await session.execute(
            select(*self.catalog.columns(table_name)).where(table.c[key_column] == key)
        )
        row = result.mappings().first()
        if row is None:
            raise NotFoundError(f"{table_name} {entity_id} not found")
        return row_to_record(row)

    async def fetch_children(
        self, session: AsyncSession, children: ChildCollection, parent_key: Any
    ) -> list[CanonicalRecord]:
        """Lignes enfants triees / Ordered child rows."""
        foreign_key = self.catalog.column(children.table, children.foreign_key)
        order_by = self.catalog.column(children.table, children.order_by)
        result = await session.execute(
            select(*self.catalog.columns(children.table)).where(foreign_key == parent_key).order_by(order_by)
        )
        return [row_to_record(row) for row in result.mappings().all()]
