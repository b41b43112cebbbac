"""
Restauration des entites / Restore dispatcher.

Choisit la routine dediee d'un type d'entite si elle existe, sinon la
restauration generique pilotee par le catalogue du schema.
Picks an entity type's dedicated routine when one is registered, otherwise the
generic, schema-driven restore.

Tout se passe dans la transaction de l'appelant : rien n'est commite ici.
Everything runs in the caller's transaction: nothing is committed here.
"""

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rewind.exceptions import NotFoundError, PersistenceError, ValidationError
from rewind.services.catalog import SchemaCatalog, coerce_value
from rewind.services.registry import ChildCollection, EntityRegistry
from rewind.services.snapshot import CHILDREN_KEY

logger = logging.getLogger("rewind.restore")

_UPSERT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


class RestoreDispatcher:
    def __init__(self, registry: EntityRegistry, catalog: SchemaCatalog):
        self.registry = registry
        self.catalog = catalog

    async def restore(
        self, session: AsyncSession, entity_type: str, entity_id: str, record: Mapping[str, Any]
    ) -> None:
        """Re-materialiser une entite depuis un instantane / Re-materialize an entity from a snapshot."""
        if not isinstance(record, Mapping) or not record:
            raise ValidationError(f"empty snapshot for {entity_type} {entity_id}")

        table_name = self.registry.canonical(entity_type)
        capabilities = self.registry.resolve(table_name)
        try:
            if capabilities and capabilities.restore:
                await capabilities.restore(self, session, entity_id, dict(record))
            elif capabilities and capabilities.children:
                await self.restore_aggregate(session, table_name, entity_id, record, capabilities.children)
            else:
                await self.upsert(session, table_name, entity_id, record)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"restore of {table_name} {entity_id} failed: {exc}") from exc

    async def delete(self, session: AsyncSession, entity_type: str, entity_id: str) -> None:
        table_name = self.registry.canonical(entity_type)
        capabilities = self.registry.resolve(table_name)
        try:
            if capabilities and capabilities.delete:
                await capabilities.delete(self, session, entity_id)
            else:
                children = capabilities.children if capabilities else None
                await self.delete_row(session, table_name, entity_id, children=children)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"delete of {table_name} {entity_id} failed: {exc}") from exc

    async def exists(self, session: AsyncSession, entity_type: str, entity_id: str) -> bool:
        table_name = self.registry.canonical(entity_type)
        table = self.catalog.table(table_name)
        key_column = self.registry.key_column(table_name)
        key = self.catalog.key_value(table_name, key_column, entity_id)
        result = await session.execute(select(table.c[key_column]).where(table.c[key_column] == key))
        return result.first() is not None

    async def upsert(
        self, session: AsyncSession, table_name: str, entity_id: str | None, record: Mapping[str, Any]
    ) -> None:
        """Restauration generique : insert-or-update par cle primaire / Generic restore: upsert by primary key."""
        table = self.catalog.table(table_name)
        key_column = self.registry.key_column(table_name)
        values = self.bind_values(table, record)

        if entity_id is not None:
            key = self.catalog.key_value(table_name, key_column, entity_id)
            if key_column in values and values[key_column] != key:
                raise ValidationError(
                    f"snapshot key {values[key_column]!r} does not match {table_name} {entity_id}"
                )
            values[key_column] = key
        elif key_column not in values:
            raise ValidationError(f"snapshot for {table_name} is missing its key {key_column}")

        key = values[key_column]
        found = await session.execute(select(table.c[key_column]).where(table.c[key_column] == key))
        if found.first() is not None:
            # Ligne existante : seules les colonnes fournies changent / Existing row: only supplied columns change
            await session.execute(update(table).where(table.c[key_column] == key).values(values))
            return

        make_insert = _UPSERT_INSERTS.get(session.get_bind().dialect.name)
        if make_insert is None:
            await session.execute(insert(table).values(values))
            return

        # Insertion concurrente possible entre la lecture et l'ecriture /
        # A concurrent insert may land between the read and the write
        stmt = make_insert(table).values(values)
        updates = {name: stmt.excluded[name] for name in values if name != key_column}
        if updates:
            stmt = stmt.on_conflict_do_update(index_elements=[table.c[key_column]], set_=updates)
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=[table.c[key_column]])
        await session.execute(stmt)

    async def restore_aggregate(
        self,
        session: AsyncSession,
        table_name: str,
        entity_id: str,
        record: Mapping[str, Any],
        children: ChildCollection,
    ) -> None:
        """Parent d'abord, puis les lignes enfants (supprimer puis reinserer) /
        Parent first, then the child lines (delete then reinsert).
        """
        parent = {key: value for key, value in record.items() if key != CHILDREN_KEY}
        await self.upsert(session, table_name, entity_id, parent)

        lines = record.get(CHILDREN_KEY)
        if lines is None:
            return
        if not isinstance(lines, list) or not all(isinstance(line, Mapping) for line in lines):
            raise ValidationError(f"{CHILDREN_KEY} of {table_name} {entity_id} must be a list of objects")

        child_table = self.catalog.table(children.table)
        foreign_key = self.catalog.column(children.table, children.foreign_key)
        parent_key = self.catalog.key_value(table_name, self.registry.key_column(table_name), entity_id)

        await session.execute(delete(child_table).where(foreign_key == parent_key))
        for line in lines:
            values = self.bind_values(child_table, line)
            values[children.foreign_key] = coerce_value(foreign_key, parent_key)
            await session.execute(insert(child_table).values(values))
        logger.debug("Restored %s %s with %d %s", table_name, entity_id, len(lines), children.table)

    async def delete_row(
        self,
        session: AsyncSession,
        table_name: str,
        entity_id: str,
        children: ChildCollection | None = None,
    ) -> None:
        """Supprimer par cle primaire, enfants d'abord / Delete by primary key, children first."""
        table = self.catalog.table(table_name)
        key_column = self.registry.key_column(table_name)
        key = self.catalog.key_value(table_name, key_column, entity_id)

        if children:
            child_table = self.catalog.table(children.table)
            foreign_key = self.catalog.column(children.table, children.foreign_key)
            await session.execute(delete(child_table).where(foreign_key == key))

        result = await session.execute(delete(table).where(table.c[key_column] == key))
        if result.rowcount == 0:
            raise NotFoundError(f"{table_name} {entity_id} not found")

    def bind_values(self, table: Table, record: Mapping[str, Any]) -> dict[str, Any]:
        """Filtrer les cles par la liste blanche du catalogue / Filter keys through the catalog allow-list.

        Les noms viennent des colonnes reflechies, jamais de l'appelant /
        Names come from the reflected columns, never from the caller.
        """
        allowed = self.catalog.allowed_columns(table.name)
        values: dict[str, Any] = {}
        dropped: list[str] = []
        for key, value in record.items():
            if key == CHILDREN_KEY:
                continue
            column = table.c.get(key) if isinstance(key, str) and key in allowed else None
            if column is None:
                dropped.append(repr(key))
                continue
            values[column.name] = coerce_value(column, value)

        if dropped:
            logger.warning("Dropped unknown columns for %s: %s", table.name, ", ".join(dropped))
        if not values:
            raise ValidationError(f"snapshot has no known columns for {table.name}")
        return values
