"""Token identity rows, owned by the store and patched by ingestion."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from memetrack.models.base import Base


class Token(Base):
    """One on-chain asset.

    ``uri`` is the join key used to resolve price records. Ingestion never
    creates rows here; it only patches metadata and market fields.
    """

    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    uri: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    address: Mapped[str | None] = mapped_column(String, nullable=True, index=True, comment="Mint address")

    name: Mapped[str | None] = mapped_column(String, nullable=True)
    symbol: Mapped[str | None] = mapped_column(String, nullable=True)

    market_cap: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    total_supply: Mapped[float | None] = mapped_column(Numeric, nullable=True)

    last_updated: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
