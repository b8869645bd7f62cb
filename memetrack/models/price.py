"""Append-only price observations."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from memetrack.models.base import Base


class Price(Base):
    __tablename__ = "prices"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    token_id: Mapped[int] = mapped_column(ForeignKey("tokens.id"), nullable=False, index=True)
    token_uri: Mapped[str | None] = mapped_column(String, nullable=True)

    price_usd: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    price_sol: Mapped[float | None] = mapped_column(Numeric, nullable=True)

    # Source-reported trade time
    trade_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Block time
    timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Set on every insert; earlier rows are never demoted
    is_latest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
