"""Modèle Devis / Quote model."""

from sqlalchemy import Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rewind.database import Base


class Quote(Base):
    __tablename__ = "quotes"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    customer: Mapped[str] = mapped_column(String(150), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft")  # draft | sent | accepted | rejected | expired | cancelled
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(String(32))  # ISO 8601
    valid_until: Mapped[str | None] = mapped_column(String(10))  # YYYY-MM-DD
    accepted_at: Mapped[str | None] = mapped_column(String(32))

    # Relations
    lines: Mapped[list["QuoteLine"]] = relationship(
        back_populates="quote", cascade="all, delete-orphan", order_by="QuoteLine.id"
    )

    def __repr__(self) -> str:
        return f"<Quote {self.id} - {self.customer}>"


class QuoteLine(Base):
    __tablename__ = "quote_lines"
    # Identifiants jamais reutilises : la restauration reinsere les lignes avec leur id /
    # Ids are never reused: restore reinserts lines with their snapshot id
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    quote_id: Mapped[str] = mapped_column(ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False)
    ipn: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255))
    qty: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[float | None] = mapped_column(Float)
    notes: Mapped[str | None] = mapped_column(Text)

    # Relations
    quote: Mapped["Quote"] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<QuoteLine quote={self.quote_id} ipn={self.ipn}>"
