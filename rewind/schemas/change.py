"""Schémas Historique des changements / Change history schemas."""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class ChangeEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    entity_type: str
    entity_id: str
    operation: str
    before_state: dict[str, Any] | None = None
    after_state: dict[str, Any] | None = None
    actor: str
    created_at: datetime
    consumed: bool

    @field_validator("before_state", "after_state", mode="before")
    @classmethod
    def _parse_snapshot(cls, value: Any) -> Any:
        # Stocke en JSON texte / Stored as JSON text
        if isinstance(value, str):
            return json.loads(value) if value else None
        return value


class UndoResponse(BaseModel):
    status: str
    entity_type: str
    entity_id: str
    operation: str
    redo_id: int
