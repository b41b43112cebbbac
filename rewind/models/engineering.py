"""Modèles Ingenierie / Engineering models (ECO, work order)."""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rewind.database import Base


class ECO(Base):
    """Ordre de modification / Engineering change order."""

    __tablename__ = "ecos"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="draft")  # draft | review | approved | implemented | rejected | cancelled
    priority: Mapped[str] = mapped_column(String(20), default="normal")  # low | normal | high | critical
    affected_ipns: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(String(100), default="engineer")
    created_at: Mapped[str | None] = mapped_column(String(32))
    updated_at: Mapped[str | None] = mapped_column(String(32))
    approved_at: Mapped[str | None] = mapped_column(String(32))
    approved_by: Mapped[str | None] = mapped_column(String(100))

    def __repr__(self) -> str:
        return f"<ECO {self.id} {self.status}>"


class WorkOrder(Base):
    """Ordre de fabrication / Work order."""

    __tablename__ = "work_orders"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    assembly_ipn: Mapped[str] = mapped_column(String(50), nullable=False)
    qty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(20), default="open")  # open | in_progress | complete | cancelled | on_hold
    priority: Mapped[str] = mapped_column(String(20), default="normal")
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(String(32))
    started_at: Mapped[str | None] = mapped_column(String(32))
    completed_at: Mapped[str | None] = mapped_column(String(32))

    def __repr__(self) -> str:
        return f"<WorkOrder {self.id} {self.assembly_ipn} x{self.qty}>"
