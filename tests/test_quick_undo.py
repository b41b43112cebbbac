"""Tests annulation rapide / Quick-undo tests."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from rewind.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from rewind.models import NCR, AuditLog, Device, UndoLogEntry


async def _seed(session_factory, *objects):
    async with session_factory() as session, session.begin():
        session.add_all(objects)


@pytest.fixture
async def ncr(session_factory):
    await _seed(session_factory, NCR(id="NCR-100", title="Burnt resistor", status="open"))
    return "NCR-100"


@pytest.mark.asyncio
async def test_stage_and_perform_restores(services, tracker, session_factory, ncr):
    entry_id = await services.quick_undo.stage("alice", "bulk close", "ncr", ncr)
    await tracker.update("alice", "ncrs", ncr, status="closed")

    result = await services.quick_undo.perform(entry_id, "alice")

    assert result.status == "restored"
    assert result.entity_type == "ncrs"
    assert (await tracker.current("ncrs", ncr))["status"] == "open"
    async with session_factory() as session:
        entry = await session.get(UndoLogEntry, entry_id)
        note = (await session.execute(select(AuditLog).where(AuditLog.action == "quick_undo"))).scalar_one()
    assert entry.consumed is True
    assert note.summary == "Undid bulk close on ncrs NCR-100"


@pytest.mark.asyncio
async def test_perform_twice_conflicts(services, ncr):
    entry_id = await services.quick_undo.stage("alice", "bulk close", "ncrs", ncr)
    await services.quick_undo.perform(entry_id, "alice")

    with pytest.raises(ConflictError, match="already used"):
        await services.quick_undo.perform(entry_id, "alice")


@pytest.mark.asyncio
async def test_expired_entry(services, clock, ncr):
    entry_id = await services.quick_undo.stage("alice", "bulk close", "ncrs", ncr, ttl=timedelta(minutes=5))
    assert [e.id for e in await services.quick_undo.list_entries("alice")] == [entry_id]

    clock.advance(minutes=5)

    assert await services.quick_undo.list_entries("alice") == []
    with pytest.raises(ConflictError, match="expired"):
        await services.quick_undo.perform(entry_id, "alice")


@pytest.mark.asyncio
async def test_other_actor_cannot_perform(services, ncr):
    entry_id = await services.quick_undo.stage("alice", "bulk close", "ncrs", ncr)
    with pytest.raises(NotFoundError):
        await services.quick_undo.perform(entry_id, "bob")
    with pytest.raises(NotFoundError):
        await services.quick_undo.perform(entry_id + 1, "alice")


@pytest.mark.asyncio
async def test_list_filters_and_orders(services, clock, ncr, session_factory):
    await _seed(session_factory, NCR(id="NCR-101", title="Bad crimp"))
    first = await services.quick_undo.stage("alice", "edit", "ncrs", ncr)
    clock.advance(seconds=1)
    second = await services.quick_undo.stage("alice", "edit", "ncrs", "NCR-101")
    clock.advance(seconds=1)
    used = await services.quick_undo.stage("alice", "edit", "ncrs", ncr)
    await services.quick_undo.stage("bob", "edit", "ncrs", ncr)
    await services.quick_undo.perform(used, "alice")

    entries = await services.quick_undo.list_entries("alice")
    assert [e.id for e in entries] == [second, first]
    assert [e.id for e in await services.quick_undo.list_entries("alice", limit=1)] == [second]


@pytest.mark.asyncio
async def test_staged_create_is_deleted(services, session_factory):
    await _seed(session_factory, Device(serial_number="SN-9", ipn="ASM-100"))
    entry_id = await services.quick_undo.stage("alice", "register device", "device", "SN-9", operation="create")

    await services.quick_undo.perform(entry_id, "alice")

    async with session_factory() as session:
        assert await session.get(Device, "SN-9") is None


@pytest.mark.asyncio
async def test_stage_validation(services, ncr):
    with pytest.raises(ValidationError):
        await services.quick_undo.stage("alice", "edit", "ncrs", ncr, ttl=timedelta(0))
    with pytest.raises(ValidationError):
        await services.quick_undo.stage("alice", "edit", "ncrs", ncr, operation="rename")
    with pytest.raises(NotFoundError):
        await services.quick_undo.stage("alice", "edit", "ncrs", "NCR-404")


@pytest.mark.asyncio
async def test_sweep_removes_only_expired(services, clock, ncr, session_factory):
    await services.quick_undo.stage("alice", "short", "ncrs", ncr, ttl=timedelta(minutes=1))
    kept = await services.quick_undo.stage("alice", "long", "ncrs", ncr, ttl=timedelta(hours=2))
    clock.advance(minutes=10)

    assert await services.quick_undo.sweep() == 1
    assert await services.quick_undo.sweep() == 0
    async with session_factory() as session:
        ids = (await session.execute(select(UndoLogEntry.id))).scalars().all()
        total = await session.scalar(select(func.count(UndoLogEntry.id)))
    assert list(ids) == [kept]
    assert total == 1


@pytest.mark.asyncio
async def test_stage_in_caller_session(services, session_factory, ncr):
    async with session_factory() as session, session.begin():
        entry_id = await services.quick_undo.stage("alice", "edit", "ncrs", ncr, session=session)
    entries = await services.quick_undo.list_entries("alice")
    assert [e.id for e in entries] == [entry_id]


@pytest.mark.asyncio
async def test_stage_in_caller_session_wraps_storage_errors(services, session_factory, ncr, monkeypatch):
    async def failing_flush(*args, **kwargs):
        raise OperationalError("INSERT INTO undo_log", {}, Exception("disk I/O error"))

    async with session_factory() as session:
        monkeypatch.setattr(session, "flush", failing_flush)
        with pytest.raises(PersistenceError, match="disk I/O error"):
            await services.quick_undo.stage("alice", "edit", "ncrs", ncr, session=session)
