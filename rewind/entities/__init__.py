"""
Modules metier suivis / Tracked business modules.
Chaque module enregistre ses entites dans le registre au demarrage.
Each module registers its entities in the registry at startup.
"""

from rewind.entities import engineering, inventory, procurement, quality, sales
from rewind.services.registry import EntityRegistry

MODULES = (procurement, sales, quality, engineering, inventory)


def register_entities(registry: EntityRegistry) -> EntityRegistry:
    for module in MODULES:
        module.register(registry)
    return registry


def build_registry() -> EntityRegistry:
    return register_entities(EntityRegistry())
