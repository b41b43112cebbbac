"""Modèles Stock et Appareils / Inventory and device models.

Ces deux tables n'ont pas de cle `id` / Neither table is keyed on `id`.
"""

from sqlalchemy import Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rewind.database import Base


class InventoryItem(Base):
    __tablename__ = "inventory"

    ipn: Mapped[str] = mapped_column(String(50), primary_key=True)
    qty_on_hand: Mapped[float] = mapped_column(Float, default=0)
    qty_reserved: Mapped[float] = mapped_column(Float, default=0)
    location: Mapped[str | None] = mapped_column(String(100))
    reorder_point: Mapped[float] = mapped_column(Float, default=0)
    reorder_qty: Mapped[float] = mapped_column(Float, default=0)
    description: Mapped[str | None] = mapped_column(String(255), default="")
    mpn: Mapped[str | None] = mapped_column(String(100), default="")
    updated_at: Mapped[str | None] = mapped_column(String(32))

    def __repr__(self) -> str:
        return f"<InventoryItem {self.ipn} on_hand={self.qty_on_hand}>"


class Device(Base):
    __tablename__ = "devices"

    serial_number: Mapped[str] = mapped_column(String(100), primary_key=True)
    ipn: Mapped[str] = mapped_column(String(50), nullable=False)
    firmware_version: Mapped[str | None] = mapped_column(String(50))
    customer: Mapped[str | None] = mapped_column(String(150))
    location: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(20), default="active")  # active | inactive | rma | decommissioned | maintenance
    install_date: Mapped[str | None] = mapped_column(String(10))
    last_seen: Mapped[str | None] = mapped_column(String(32))
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(String(32))

    def __repr__(self) -> str:
        return f"<Device {self.serial_number}>"
