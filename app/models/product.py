# app/models/product.py
from __future__ import annotations

from typing import Any, List, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    price_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)

    variants: Mapped[List["ProductVariant"]] = relationship(
        "ProductVariant", back_populates="product", lazy="selectin"
    )

    __table_args__ = (sa.CheckConstraint("price_cents >= 0", name="price_non_negative"),)


class ProductVariant(Base):
    """Sellable unit. Unit price = product.price_cents + additional_price_cents."""

    __tablename__ = "product_variants"

    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    product_id: Mapped[str] = mapped_column(
        sa.String(64), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sku: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    additional_price_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)
    option_values: Mapped[Optional[dict[str, Any]]] = mapped_column(sa.JSON, nullable=True)

    product: Mapped[Product] = relationship(Product, back_populates="variants", lazy="selectin")

    @property
    def unit_price_cents(self) -> int:
        return int(self.product.price_cents or 0) + int(self.additional_price_cents or 0)

    @property
    def title(self) -> str:
        base = self.product.title
        if self.option_values:
            opts = " / ".join(str(v) for v in self.option_values.values())
            return f"{base} ({opts})"
        return base

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id!r} sku={self.sku!r}>"
