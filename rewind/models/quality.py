"""Modèles Qualite / Quality models (NCR, RMA)."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rewind.database import Base


class NCR(Base):
    """Non-conformite / Non-conformance report."""

    __tablename__ = "ncrs"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    ipn: Mapped[str | None] = mapped_column(String(50))
    serial_number: Mapped[str | None] = mapped_column(String(100))
    defect_type: Mapped[str | None] = mapped_column(String(50))
    severity: Mapped[str] = mapped_column(String(20), default="minor")  # minor | major | critical
    status: Mapped[str] = mapped_column(String(20), default="open")  # open | investigating | resolved | closed
    root_cause: Mapped[str | None] = mapped_column(Text)
    corrective_action: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(String(32))  # ISO 8601
    resolved_at: Mapped[str | None] = mapped_column(String(32))

    def __repr__(self) -> str:
        return f"<NCR {self.id} {self.status}>"


class RMA(Base):
    """Retour materiel / Return merchandise authorization."""

    __tablename__ = "rmas"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    serial_number: Mapped[str] = mapped_column(String(100), nullable=False)
    customer: Mapped[str | None] = mapped_column(String(150))
    reason: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="open")  # open | received | diagnosing | repairing | resolved | closed | scrapped
    defect_description: Mapped[str | None] = mapped_column(Text)
    resolution: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(String(32))
    received_at: Mapped[str | None] = mapped_column(String(32))
    resolved_at: Mapped[str | None] = mapped_column(String(32))

    def __repr__(self) -> str:
        return f"<RMA {self.id} {self.status}>"
