"""
Catalogue du schema / Schema catalog.

Reflete les tables reelles au demarrage. Les colonnes presentes en base forment
la liste blanche utilisee par la restauration generique ; les tables declarees
par les modeles sont preferees pour garder leurs valeurs par defaut.
Reflects the real tables at startup. The columns present in the database are
the allow-list used by the generic restore path; tables declared by the models
are preferred so their column defaults apply.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from sqlalchemy import Column, MetaData, Table
from sqlalchemy.ext.asyncio import AsyncEngine

from rewind.exceptions import ValidationError

# Tables du moteur, jamais restaurables / Engine tables, never restorable
PROTECTED_TABLES = frozenset({"change_log", "undo_log", "audit_logs", "users"})


class SchemaCatalog:
    """Tables et colonnes connues / Known tables and columns."""

    def __init__(
        self,
        tables: Mapping[str, Table],
        exclude: Iterable[str] = PROTECTED_TABLES,
        columns: Mapping[str, Iterable[str]] | None = None,
    ):
        excluded = set(exclude)
        self._tables = {name: table for name, table in tables.items() if name not in excluded}
        columns = columns or {}
        self._columns = {
            name: frozenset(columns.get(name, table.c.keys())) for name, table in self._tables.items()
        }

    @classmethod
    async def load(
        cls,
        engine: AsyncEngine,
        exclude: Iterable[str] = PROTECTED_TABLES,
        declared: MetaData | None = None,
    ) -> "SchemaCatalog":
        """Introspection de la base / Database introspection (run once at startup)."""
        reflected = MetaData()
        async with engine.connect() as conn:
            await conn.run_sync(reflected.reflect)

        tables: dict[str, Table] = {}
        columns: dict[str, set[str]] = {}
        for name, table in reflected.tables.items():
            model_table = declared.tables.get(name) if declared is not None else None
            tables[name] = model_table if model_table is not None else table
            # Colonnes a la fois declarees et presentes en base / Columns both declared and present
            columns[name] = set(table.c.keys()) & set(tables[name].c.keys())
        return cls(tables, exclude=exclude, columns=columns)

    def __contains__(self, table_name: object) -> bool:
        return table_name in self._tables

    @property
    def table_names(self) -> list[str]:
        return sorted(self._tables)

    def table(self, table_name: str) -> Table:
        try:
            return self._tables[table_name]
        except KeyError:
            raise ValidationError(f"unknown entity type: {table_name}") from None

    def allowed_columns(self, table_name: str) -> frozenset[str]:
        self.table(table_name)
        return self._columns[table_name]

    def columns(self, table_name: str) -> list[Column]:
        """Colonnes autorisees, ordre de la table / Allowed columns in table order."""
        allowed = self.allowed_columns(table_name)
        return [column for column in self.table(table_name).c if column.key in allowed]

    def column(self, table_name: str, column_name: str) -> Column:
        if column_name not in self.allowed_columns(table_name):
            raise ValidationError(f"unknown column {column_name} on {table_name}")
        return self.table(table_name).c[column_name]

    def key_value(self, table_name: str, key_column: str, entity_id: Any) -> Any:
        """Convertir l'identifiant texte vers le type de la cle / Convert the text id to the key's type."""
        return coerce_value(self.column(table_name, key_column), entity_id)


def coerce_value(column: Column, value: Any) -> Any:
    """Retrouver le type Python d'une valeur canonique / Recover the Python type of a canonical value."""
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise ValidationError(f"nested value not allowed for column {column.name}")
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value

    try:
        if python_type is datetime and isinstance(value, str):
            return datetime.fromisoformat(value)
        if python_type is date and isinstance(value, str):
            return date.fromisoformat(value[:10])
        if python_type is bool and not isinstance(value, bool):
            return bool(int(value))
        if python_type is int and not isinstance(value, int):
            return int(value)
        if python_type is float and isinstance(value, str):
            return float(value)
        if python_type is str and isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"invalid value for column {column.name}: {value!r}") from exc
    return value
