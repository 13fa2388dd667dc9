from __future__ import annotations

from sqlalchemy.orm import Session

from crm_domain.business.catalog.models import Product, ProductAttribute
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.repository import BaseRepository


class ProductRepository(BaseRepository[Product]):
    model = Product
    resource = "products"

    def by_sku(self, session: Session, ctx: TenantContext, sku: str) -> Product | None:
        return session.scalar(self.base_query(ctx).where(Product.sku == sku))


class ProductAttributeRepository(BaseRepository[ProductAttribute]):
    model = ProductAttribute
    resource = "product_attributes"
