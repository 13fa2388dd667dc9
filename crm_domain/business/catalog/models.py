from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm_domain.core.database import Base
from crm_domain.core.mixins import IdMixin, SoftDeleteMixin, TeamScopedMixin, TimestampMixin


class Product(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "products"
    __morph_key__ = "product"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0"), server_default="0")
    cost_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, default="USD", server_default="USD")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    track_inventory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    inventory_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    custom_fields: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (UniqueConstraint("team_id", "sku", name="uq_products_team_sku"),)


class ProductAttribute(IdMixin, TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "product_attributes"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    data_type: Mapped[str] = mapped_column(String(32), nullable=False, default="text", server_default="text")
    is_configurable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    is_filterable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")

    values: Mapped[list[ProductAttributeValue]] = relationship(
        "ProductAttributeValue",
        back_populates="attribute",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProductAttributeValue.sort_order",
    )

    __table_args__ = (UniqueConstraint("team_id", "slug", name="uq_product_attributes_team_slug"),)


class ProductAttributeValue(IdMixin, TimestampMixin, Base):
    __tablename__ = "product_attribute_values"

    product_attribute_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("product_attributes.id", ondelete="CASCADE"),
        nullable=False,
    )
    value: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    attribute: Mapped[ProductAttribute] = relationship("ProductAttribute", back_populates="values")

    __table_args__ = (
        UniqueConstraint("product_attribute_id", "value", name="uq_product_attribute_values_value"),
    )
