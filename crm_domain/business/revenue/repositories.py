from __future__ import annotations

from sqlalchemy.orm import Session

from crm_domain.business.revenue.models import Delivery, Order, Quote
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.repository import BaseRepository


class QuoteRepository(BaseRepository[Quote]):
    model = Quote
    resource = "quotes"


class OrderRepository(BaseRepository[Order]):
    model = Order
    resource = "orders"

    def by_number(self, session: Session, ctx: TenantContext, number: str) -> Order | None:
        return session.scalar(self.base_query(ctx).where(Order.number == number))


class DeliveryRepository(BaseRepository[Delivery]):
    model = Delivery
    resource = "deliveries"
