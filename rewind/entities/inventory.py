"""Stock et appareils, cles non standard / Inventory and devices, non-default keys."""

from rewind.services.registry import EntityCapabilities, EntityRegistry


def register(registry: EntityRegistry) -> None:
    registry.register(EntityCapabilities("inventory", key_column="ipn"))
    registry.register(EntityCapabilities("devices", key_column="serial_number", aliases=("device",)))
