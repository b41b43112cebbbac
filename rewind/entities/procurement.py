"""Achats : fournisseurs et bons de commande / Procurement: vendors and purchase orders."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from rewind.exceptions import NotFoundError
from rewind.services.registry import ChildCollection, EntityCapabilities, EntityRegistry
from rewind.services.restore import RestoreDispatcher

PO_LINES = ChildCollection(table="po_lines", foreign_key="po_id")


async def restore_purchase_order(
    dispatcher: RestoreDispatcher, session: AsyncSession, entity_id: str, record: dict[str, Any]
) -> None:
    """Le fournisseur doit exister avant la commande / The vendor must exist before the order."""
    vendor_id = record.get("vendor_id")
    if vendor_id is None or not await dispatcher.exists(session, "vendors", str(vendor_id)):
        raise NotFoundError(f"vendor {vendor_id} must exist before restoring purchase order {entity_id}")
    await dispatcher.restore_aggregate(session, "purchase_orders", entity_id, record, PO_LINES)


def register(registry: EntityRegistry) -> None:
    registry.register(EntityCapabilities("vendors", aliases=("vendor",)))
    registry.register(EntityCapabilities(
        "purchase_orders",
        children=PO_LINES,
        restore=restore_purchase_order,
        aliases=("po", "purchase_order"),
    ))
