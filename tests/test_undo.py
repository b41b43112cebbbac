"""Tests annulation / refaire / Undo and redo tests."""

import asyncio

import pytest
from sqlalchemy import func, select

from rewind.config import Settings
from rewind.exceptions import ConflictError, NotFoundError, ValidationError
from rewind.models import NCR, AuditLog, ChangeEntry, Device, InventoryItem, POLine, PurchaseOrder, Vendor
from rewind.services.factory import create_services
from rewind.services.undo import UndoResult


def _vendor(vendor_id="V-001", name="Acme Components"):
    return Vendor(id=vendor_id, name=name, contact_email="sales@acme.test", status="active", lead_time_days=14)


def _purchase_order(po_id="PO-0001", vendor_id="V-001", lines=3):
    return PurchaseOrder(
        id=po_id,
        vendor_id=vendor_id,
        status="sent",
        total=125.5,
        lines=[
            POLine(ipn=f"CAP-{n:03d}", qty_ordered=10 * (n + 1), unit_price=0.25 * (n + 1))
            for n in range(lines)
        ],
    )


async def _entry(session_factory, change_id) -> ChangeEntry:
    async with session_factory() as session:
        return await session.get(ChangeEntry, change_id)


@pytest.mark.asyncio
async def test_undo_create_then_redo(services, tracker):
    """Creation fournisseur -> annuler -> refaire / Vendor create -> undo -> redo."""
    vendor_id, change_id = await tracker.create("alice", "vendor", _vendor())
    original = await tracker.current("vendors", vendor_id)

    result = await services.undo.undo(change_id, "alice")
    assert result.status == "undone"
    assert result.operation == "create"
    assert result.entity_type == "vendors"
    assert result.redo_id > change_id
    assert await tracker.current("vendors", vendor_id) is None

    await services.undo.undo(result.redo_id, "alice")
    assert await tracker.current("vendors", vendor_id) == original


@pytest.mark.asyncio
async def test_undo_update_reopens_ncr(services, tracker):
    ncr = NCR(id="NCR-0042", title="Solder bridge on U3", status="open", severity="major")
    ncr_id, _ = await tracker.create("alice", "ncr", ncr)
    change_id = await tracker.update(
        "alice", "ncr", ncr_id, status="resolved", resolved_at="2026-01-15T10:00:00+00:00"
    )

    await services.undo.undo(change_id, "alice")

    current = await tracker.current("ncrs", ncr_id)
    assert current["status"] == "open"
    assert current["resolved_at"] is None


@pytest.mark.asyncio
async def test_undo_purchase_order_delete_restores_lines(services, tracker, session_factory):
    await tracker.create("alice", "vendor", _vendor())
    po_id, _ = await tracker.create("alice", "po", _purchase_order(lines=3))
    before = await tracker.current("purchase_orders", po_id)
    assert len(before["_lines"]) == 3

    change_id = await tracker.delete("alice", "po", po_id)
    assert await tracker.current("purchase_orders", po_id) is None

    await services.undo.undo(change_id, "alice")

    restored = await tracker.current("purchase_orders", po_id)
    assert restored == before
    async with session_factory() as session:
        count = await session.scalar(select(func.count(POLine.id)).where(POLine.po_id == po_id))
    assert count == 3


@pytest.mark.asyncio
async def test_second_undo_conflicts_and_leaves_state(services, tracker):
    ncr_id, _ = await tracker.create("alice", "ncr", NCR(id="NCR-7", title="Cracked housing"))
    change_id = await tracker.update("alice", "ncr", ncr_id, status="investigating")

    await services.undo.undo(change_id, "alice")
    state = await tracker.current("ncrs", ncr_id)

    with pytest.raises(ConflictError, match="already undone"):
        await services.undo.undo(change_id, "alice")
    assert await tracker.current("ncrs", ncr_id) == state


@pytest.mark.asyncio
async def test_inverse_entries(services, tracker, session_factory):
    ncr_id, create_id = await tracker.create("alice", "ncr", NCR(id="NCR-9", title="Wrong label"))
    update_id = await tracker.update("alice", "ncr", ncr_id, severity="critical")

    undo_update = await services.undo.undo(update_id, "alice")
    redo = await _entry(session_factory, undo_update.redo_id)
    original = await _entry(session_factory, update_id)
    assert redo.operation == "update"
    assert redo.before_state == original.after_state
    assert redo.after_state == original.before_state
    assert original.consumed is True

    undo_create = await services.undo.undo(create_id, "alice")
    redo = await _entry(session_factory, undo_create.redo_id)
    assert redo.operation == "delete"
    assert redo.after_state is None

    undo_delete = await services.undo.undo(redo.id, "alice")
    redo = await _entry(session_factory, undo_delete.redo_id)
    assert redo.operation == "create"
    assert redo.before_state is None


@pytest.mark.asyncio
async def test_failed_restore_leaves_entry_active(services, tracker, session_factory):
    await tracker.create("alice", "vendor", _vendor())
    po_id, _ = await tracker.create("alice", "po", _purchase_order(lines=2))
    change_id = await tracker.delete("alice", "po", po_id)
    await tracker.delete("alice", "vendor", "V-001")

    with pytest.raises(NotFoundError, match="vendor V-001"):
        await services.undo.undo(change_id, "alice")

    entry = await _entry(session_factory, change_id)
    assert entry.consumed is False
    async with session_factory() as session:
        undo_notes = await session.scalar(select(func.count(AuditLog.id)).where(AuditLog.action == "undo"))
    assert undo_notes == 0


@pytest.mark.asyncio
async def test_undo_writes_audit_note(services, tracker, session_factory):
    ncr_id, _ = await tracker.create("alice", "ncr", NCR(id="NCR-11", title="Scratch"))
    change_id = await tracker.update("alice", "ncr", ncr_id, status="closed")

    await services.undo.undo(change_id, "alice")

    async with session_factory() as session:
        note = (await session.execute(select(AuditLog).where(AuditLog.action == "undo"))).scalar_one()
    assert note.summary == "Undid update on ncrs NCR-11"
    assert note.actor == "alice"


@pytest.mark.asyncio
async def test_device_and_inventory_keys(services, tracker):
    serial, _ = await tracker.create(
        "bob", "device", Device(serial_number="SN-2026-0001", ipn="ASM-100", firmware_version="1.0.0")
    )
    change_id = await tracker.update("bob", "device", serial, firmware_version="1.1.0")
    await services.undo.undo(change_id, "bob")
    assert (await tracker.current("devices", serial))["firmware_version"] == "1.0.0"

    ipn, _ = await tracker.create("bob", "inventory", InventoryItem(ipn="RES-0402-10K", qty_on_hand=500))
    change_id = await tracker.delete("bob", "inventory", ipn)
    await services.undo.undo(change_id, "bob")
    assert (await tracker.current("inventory", ipn))["qty_on_hand"] == 500


@pytest.mark.asyncio
async def test_undo_scoped_to_actor(services, tracker):
    ncr_id, _ = await tracker.create("alice", "ncr", NCR(id="NCR-20", title="Bent pin"))
    change_id = await tracker.update("alice", "ncr", ncr_id, status="closed")

    with pytest.raises(NotFoundError):
        await services.undo.undo(change_id, "mallory")
    # Sans override, meme un superadmin est limite / Without override even a superadmin is scoped
    with pytest.raises(NotFoundError):
        await services.undo.undo(change_id, "admin", is_superadmin=True)


@pytest.mark.asyncio
async def test_admin_override(engine, session_factory, clock, tracker):
    admin_services = await create_services(
        engine, session_factory, clock=clock, config=Settings(UNDO_ADMIN_OVERRIDE=True)
    )
    ncr_id, _ = await tracker.create("alice", "ncr", NCR(id="NCR-21", title="Loose screw"))
    change_id = await tracker.update("alice", "ncr", ncr_id, status="closed")

    with pytest.raises(NotFoundError):
        await admin_services.undo.undo(change_id, "mallory", is_superadmin=False)
    result = await admin_services.undo.undo(change_id, "admin", is_superadmin=True)
    assert result.status == "undone"


@pytest.mark.asyncio
@pytest.mark.parametrize("change_id", [0, -3, True, "12"])
async def test_invalid_change_id(services, change_id):
    with pytest.raises(ValidationError):
        await services.undo.undo(change_id, "alice")


@pytest.mark.asyncio
async def test_unknown_change(services):
    with pytest.raises(NotFoundError, match="change not found"):
        await services.undo.undo(9999, "alice")


@pytest.mark.asyncio
async def test_restored_lines_keep_ids_after_new_order(services, tracker, session_factory):
    """Les ids de lignes supprimees ne sont pas reattribues / Deleted line ids are not handed out again."""
    await tracker.create("alice", "vendor", _vendor())
    first_id, _ = await tracker.create("alice", "po", _purchase_order("PO-0001", lines=3))
    before = await tracker.current("purchase_orders", first_id)
    change_id = await tracker.delete("alice", "po", first_id)

    second_id, _ = await tracker.create("alice", "po", _purchase_order("PO-0002", lines=3))
    second = await tracker.current("purchase_orders", second_id)
    deleted_ids = {line["id"] for line in before["_lines"]}
    assert deleted_ids.isdisjoint(line["id"] for line in second["_lines"])

    await services.undo.undo(change_id, "alice")

    assert await tracker.current("purchase_orders", first_id) == before
    assert await tracker.current("purchase_orders", second_id) == second


@pytest.mark.asyncio
async def test_concurrent_undo_single_winner(services, tracker):
    ncr_id, _ = await tracker.create("alice", "ncr", NCR(id="NCR-30", title="Flux residue"))
    change_id = await tracker.update("alice", "ncr", ncr_id, status="closed")

    results = await asyncio.gather(
        services.undo.undo(change_id, "alice"),
        services.undo.undo(change_id, "alice"),
        return_exceptions=True,
    )

    assert sum(isinstance(r, UndoResult) for r in results) == 1
    assert sum(isinstance(r, ConflictError) for r in results) == 1
    assert (await tracker.current("ncrs", ncr_id))["status"] == "open"


@pytest.mark.asyncio
async def test_losing_create_undo_reports_conflict(services, tracker, monkeypatch):
    vendor_id, change_id = await tracker.create("alice", "vendor", _vendor())
    real_delete = services.dispatcher.delete
    calls = []

    async def delete_after_rival(session, entity_type, entity_id):
        calls.append(entity_id)
        if len(calls) == 1:
            # Un autre appel annule la meme entree et commite d'abord /
            # Another caller undoes the same entry and commits first
            await services.undo.undo(change_id, "alice")
        await real_delete(session, entity_type, entity_id)

    monkeypatch.setattr(services.dispatcher, "delete", delete_after_rival)

    with pytest.raises(ConflictError, match="already undone"):
        await services.undo.undo(change_id, "alice")
    assert len(calls) == 2
    assert await tracker.current("vendors", vendor_id) is None
