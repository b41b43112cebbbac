"""Modèle Bon de commande / Purchase order model."""

from sqlalchemy import Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rewind.database import Base


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    vendor_id: Mapped[str] = mapped_column(ForeignKey("vendors.id", ondelete="RESTRICT"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft")  # draft | sent | confirmed | partial | received | cancelled
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(String(100), default="")
    total: Mapped[float] = mapped_column(Float, default=0)
    created_at: Mapped[str | None] = mapped_column(String(32))  # ISO 8601
    expected_date: Mapped[str | None] = mapped_column(String(10))  # YYYY-MM-DD
    received_at: Mapped[str | None] = mapped_column(String(32))

    # Relations
    vendor: Mapped["Vendor"] = relationship(back_populates="purchase_orders")
    lines: Mapped[list["POLine"]] = relationship(
        back_populates="purchase_order", cascade="all, delete-orphan", order_by="POLine.id"
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.id} vendor={self.vendor_id}>"


class POLine(Base):
    __tablename__ = "po_lines"
    # Identifiants jamais reutilises : la restauration reinsere les lignes avec leur id /
    # Ids are never reused: restore reinserts lines with their snapshot id
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    po_id: Mapped[str] = mapped_column(ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False)
    ipn: Mapped[str] = mapped_column(String(50), nullable=False)
    mpn: Mapped[str | None] = mapped_column(String(100))
    manufacturer: Mapped[str | None] = mapped_column(String(100))
    qty_ordered: Mapped[float] = mapped_column(Float, nullable=False)
    qty_received: Mapped[float] = mapped_column(Float, default=0)
    unit_price: Mapped[float | None] = mapped_column(Float)
    notes: Mapped[str | None] = mapped_column(Text)

    # Relations
    purchase_order: Mapped["PurchaseOrder"] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<POLine po={self.po_id} ipn={self.ipn}>"
