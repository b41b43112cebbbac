"""Qualite / Quality: NCRs and RMAs."""

from rewind.services.registry import EntityCapabilities, EntityRegistry


def register(registry: EntityRegistry) -> None:
    registry.register(EntityCapabilities("ncrs", aliases=("ncr",)))
    registry.register(EntityCapabilities("rmas", aliases=("rma",)))
