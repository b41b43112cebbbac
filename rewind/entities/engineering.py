"""Ingenierie / Engineering: ECOs and work orders."""

from rewind.services.registry import EntityCapabilities, EntityRegistry


def register(registry: EntityRegistry) -> None:
    registry.register(EntityCapabilities("ecos", aliases=("eco",)))
    registry.register(EntityCapabilities("work_orders", aliases=("workorder", "work_order")))
