"""
Registre des entites suivies / Tracked entity registry.

Chaque module metier enregistre ses capacites au demarrage
(snapshot / restore / delete, cle primaire, collection enfant).
Each business module registers its capabilities at startup.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from rewind.services.restore import RestoreDispatcher
    from rewind.services.snapshot import SnapshotSerializer

SnapshotFn = Callable[["SnapshotSerializer", "AsyncSession", str], Awaitable[dict[str, Any]]]
RestoreFn = Callable[["RestoreDispatcher", "AsyncSession", str, dict[str, Any]], Awaitable[None]]
DeleteFn = Callable[["RestoreDispatcher", "AsyncSession", str], Awaitable[None]]

DEFAULT_KEY_COLUMN = "id"


@dataclass(frozen=True)
class ChildCollection:
    """Lignes enfants d'un agregat / Child line items of an aggregate."""
    table: str
    foreign_key: str
    order_by: str = "id"


@dataclass(frozen=True)
class EntityCapabilities:
    entity_type: str
    key_column: str = DEFAULT_KEY_COLUMN
    children: ChildCollection | None = None
    snapshot: SnapshotFn | None = None
    restore: RestoreFn | None = None
    delete: DeleteFn | None = None
    aliases: tuple[str, ...] = ()


class EntityRegistry:
    def __init__(self):
        self._entities: dict[str, EntityCapabilities] = {}
        self._aliases: dict[str, str] = {}

    def register(self, capabilities: EntityCapabilities) -> None:
        names = (capabilities.entity_type, *capabilities.aliases)
        for name in names:
            if name in self._entities or name in self._aliases:
                raise ValueError(f"entity type already registered: {name}")
        self._entities[capabilities.entity_type] = capabilities
        for alias in capabilities.aliases:
            self._aliases[alias] = capabilities.entity_type

    def canonical(self, entity_type: str) -> str:
        """Nom de table pour un tag ou un alias / Table name for a tag or alias."""
        return self._aliases.get(entity_type, entity_type)

    def resolve(self, entity_type: str) -> EntityCapabilities | None:
        return self._entities.get(self.canonical(entity_type))

    def key_column(self, entity_type: str) -> str:
        """Colonne de cle primaire, `id` par defaut / Primary-key column, `id` by default.

        Consulte par snapshot, restore et delete / Consulted by snapshot, restore and delete.
        """
        capabilities = self.resolve(entity_type)
        return capabilities.key_column if capabilities else DEFAULT_KEY_COLUMN

    def __contains__(self, entity_type: object) -> bool:
        return isinstance(entity_type, str) and self.canonical(entity_type) in self._entities

    @property
    def entity_types(self) -> list[str]:
        return sorted(self._entities)
