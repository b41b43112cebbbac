"""Modèle Historique des changements / Change history model."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rewind.database import Base
from rewind.utils.clock import utcnow


class Operation(str, enum.Enum):
    """Operation enregistree / Recorded operation."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def inverse(self) -> "Operation":
        """Operation structurellement inverse / Structural inverse (create <-> delete)."""
        if self is Operation.CREATE:
            return Operation.DELETE
        if self is Operation.DELETE:
            return Operation.CREATE
        return Operation.UPDATE


class ChangeEntry(Base):
    __tablename__ = "change_log"
    __table_args__ = (
        Index("ix_change_log_entity", "entity_type", "entity_id"),
        Index("ix_change_log_actor_created", "actor", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)
    operation: Mapped[str] = mapped_column(String(10), nullable=False)  # create, update, delete
    before_state: Mapped[str | None] = mapped_column(Text)  # JSON
    after_state: Mapped[str | None] = mapped_column(Text)  # JSON
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    # Bascule une seule fois, jamais remis a False / Flips once, never reverts
    consumed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<ChangeEntry {self.id} {self.operation} {self.entity_type}:{self.entity_id}>"
