from __future__ import annotations

from crm_domain.business.procurement.models import PurchaseOrder
from crm_domain.platform.security.repository import BaseRepository


class PurchaseOrderRepository(BaseRepository[PurchaseOrder]):
    model = PurchaseOrder
    resource = "purchase_orders"
