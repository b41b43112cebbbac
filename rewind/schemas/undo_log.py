"""Schémas Annulation rapide / Quick-undo schemas."""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class UndoLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    actor: str
    action: str
    entity_type: str
    entity_id: str
    operation: str
    previous_state: dict[str, Any] | None = None
    created_at: datetime
    expires_at: datetime
    consumed: bool

    @field_validator("previous_state", mode="before")
    @classmethod
    def _parse_snapshot(cls, value: Any) -> Any:
        if isinstance(value, str):
            return json.loads(value) if value else None
        return value


class QuickUndoResponse(BaseModel):
    status: str
    entity_type: str
    entity_id: str
