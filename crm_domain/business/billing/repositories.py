from __future__ import annotations

from sqlalchemy.orm import Session

from crm_domain.business.billing.models import Invoice
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.repository import BaseRepository


class InvoiceRepository(BaseRepository[Invoice]):
    model = Invoice
    resource = "invoices"

    def by_number(self, session: Session, ctx: TenantContext, number: str) -> Invoice | None:
        return session.scalar(self.base_query(ctx).where(Invoice.number == number))
