"""Modèle Fournisseur / Vendor model."""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rewind.database import Base


class Vendor(Base):
    __tablename__ = "vendors"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    website: Mapped[str | None] = mapped_column(String(255))
    contact_name: Mapped[str | None] = mapped_column(String(100))
    contact_email: Mapped[str | None] = mapped_column(String(150))
    contact_phone: Mapped[str | None] = mapped_column(String(30))
    address: Mapped[str | None] = mapped_column(String(255), default="")
    payment_terms: Mapped[str | None] = mapped_column(String(100), default="")
    notes: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="active")  # active | preferred | inactive | blocked
    lead_time_days: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[str | None] = mapped_column(String(32))  # ISO 8601

    # Relations
    purchase_orders: Mapped[list["PurchaseOrder"]] = relationship(back_populates="vendor")

    def __repr__(self) -> str:
        return f"<Vendor {self.id} - {self.name}>"
