"""Ventes : devis / Sales: quotes."""

from rewind.services.registry import ChildCollection, EntityCapabilities, EntityRegistry

QUOTE_LINES = ChildCollection(table="quote_lines", foreign_key="quote_id")


def register(registry: EntityRegistry) -> None:
    registry.register(EntityCapabilities("quotes", children=QUOTE_LINES, aliases=("quote",)))
