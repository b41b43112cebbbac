"""Tests des modèles et du registre / Model and registry tests."""

import pytest

from rewind.entities import build_registry
from rewind.exceptions import ValidationError
from rewind.models import ChangeEntry, Device, Operation, UndoLogEntry
from rewind.services.registry import EntityCapabilities, EntityRegistry
from rewind.services.snapshot import decode_record, encode_record, to_record


def test_change_entry_repr():
    entry = ChangeEntry(id=7, entity_type="ncrs", entity_id="NCR-1", operation="update", actor="alice")
    assert "NCR-1" in repr(entry)
    assert "UndoLogEntry" in repr(UndoLogEntry(id=1, action="edit", entity_type="ncrs", entity_id="NCR-1"))


def test_operation_inverse():
    assert Operation.CREATE.inverse is Operation.DELETE
    assert Operation.DELETE.inverse is Operation.CREATE
    assert Operation.UPDATE.inverse is Operation.UPDATE
    assert Operation("update") is Operation.UPDATE


def test_registry_aliases_and_keys():
    registry = build_registry()
    assert registry.canonical("po") == "purchase_orders"
    assert registry.canonical("workorder") == "work_orders"
    assert registry.canonical("device") == "devices"
    assert registry.key_column("devices") == "serial_number"
    assert registry.key_column("inventory") == "ipn"
    assert registry.key_column("vendor") == "id"
    assert registry.key_column("unregistered") == "id"
    assert "eco" in registry
    assert "spaceships" not in registry
    assert registry.resolve("quote").children.table == "quote_lines"


def test_registry_rejects_duplicates():
    registry = EntityRegistry()
    registry.register(EntityCapabilities("ncrs", aliases=("ncr",)))
    with pytest.raises(ValueError):
        registry.register(EntityCapabilities("ncr"))
    with pytest.raises(ValueError):
        registry.register(EntityCapabilities("ncrs"))


def test_to_record_from_orm_instance():
    record = to_record(Device(serial_number="SN-1", ipn="ASM-100", status="active"))
    assert record["serial_number"] == "SN-1"
    assert record["ipn"] == "ASM-100"
    assert to_record(None) is None
    with pytest.raises(ValidationError):
        to_record(object())


def test_decode_record_rejects_garbage():
    assert decode_record(encode_record({"id": "NCR-1"})) == {"id": "NCR-1"}
    assert encode_record({}) is None
    for text in (None, "", "{", "[]", "{}", '"text"'):
        with pytest.raises(ValidationError):
            decode_record(text)
