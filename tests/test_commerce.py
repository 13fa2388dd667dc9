from __future__ import annotations

from collections.abc import Generator
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_domain.business.billing.repositories import InvoiceRepository
from crm_domain.business.catalog.repositories import ProductAttributeRepository, ProductRepository
from crm_domain.business.procurement.repositories import PurchaseOrderRepository
from crm_domain.business.revenue.repositories import DeliveryRepository, OrderRepository, QuoteRepository
from crm_domain.core.database import Base
from crm_domain.models import (
    Company,
    InvoiceItem,
    InvoiceLineItem,
    OrderLineItem,
    OrderProduct,
    ProductAttributeValue,
    PurchaseOrderItem,
    QuoteLineItem,
    Team,
)
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import RecordNotFoundError, UniqueConstraintViolation


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def teams(db_session: Session) -> tuple[Team, Team]:
    team_a = Team(name="Team A", slug="team-a")
    team_b = Team(name="Team B", slug="team-b")
    db_session.add_all([team_a, team_b])
    db_session.commit()
    return team_a, team_b


def test_line_item_aliases_share_tables() -> None:
    assert OrderProduct is OrderLineItem
    assert InvoiceItem is InvoiceLineItem
    assert OrderLineItem.__tablename__ == "order_line_items"


def test_product_lookup_by_sku_is_tenant_scoped(db_session: Session, teams: tuple[Team, Team]) -> None:
    team_a, team_b = teams
    repo = ProductRepository()
    ctx_a = TenantContext(team_id=team_a.id)
    repo.create(db_session, ctx_a, {"name": "Widget", "slug": "widget", "sku": "W-1", "price": Decimal("9.50")})
    db_session.commit()

    found = repo.by_sku(db_session, ctx_a, "W-1")
    assert found is not None
    assert found.price == Decimal("9.50")
    assert repo.by_sku(db_session, TenantContext(team_id=team_b.id), "W-1") is None


def test_duplicate_sku_within_team_is_rejected(db_session: Session, teams: tuple[Team, Team]) -> None:
    team_a, team_b = teams
    repo = ProductRepository()
    repo.create(db_session, TenantContext(team_id=team_a.id), {"name": "Widget", "slug": "widget", "sku": "W-1"})
    db_session.commit()

    repo.create(db_session, TenantContext(team_id=team_b.id), {"name": "Widget", "slug": "widget", "sku": "W-1"})
    db_session.commit()

    with pytest.raises(UniqueConstraintViolation) as exc_info:
        repo.create(db_session, TenantContext(team_id=team_a.id), {"name": "Other", "slug": "other", "sku": "W-1"})
    assert exc_info.value.resource == "products"


def test_attribute_values_follow_their_attribute(db_session: Session, teams: tuple[Team, Team]) -> None:
    team_a, _ = teams
    attribute = ProductAttributeRepository().create(
        db_session,
        TenantContext(team_id=team_a.id),
        {"name": "Colour", "slug": "colour", "is_configurable": True},
    )
    attribute.values.extend(
        [ProductAttributeValue(value="Red", sort_order=2), ProductAttributeValue(value="Blue", sort_order=1)]
    )
    db_session.commit()
    db_session.expire_all()

    assert [value.value for value in attribute.values] == ["Blue", "Red"]


def test_order_with_lines_and_delivery(db_session: Session, teams: tuple[Team, Team]) -> None:
    team_a, team_b = teams
    ctx_a = TenantContext(team_id=team_a.id)
    quote = QuoteRepository().create(db_session, ctx_a, {"title": "Q-1"})
    quote.line_items.append(QuoteLineItem(name="Setup", unit_price=Decimal("100"), line_total=Decimal("100")))
    orders = OrderRepository()
    order = orders.create(db_session, ctx_a, {"number": "SO-1", "quote_id": quote.id, "total": Decimal("100")})
    order.line_items.append(OrderLineItem(name="Setup", unit_price=Decimal("100"), line_total=Decimal("100")))
    DeliveryRepository().create(db_session, ctx_a, {"order_id": order.id, "carrier": "UPS"})
    db_session.commit()
    db_session.expire_all()

    loaded = orders.by_number(db_session, ctx_a, "SO-1")
    assert loaded is not None
    assert loaded.quote.title == "Q-1"
    assert [item.name for item in loaded.line_items] == ["Setup"]
    assert loaded.delivery is not None and loaded.delivery.carrier == "UPS"
    assert orders.by_number(db_session, TenantContext(team_id=team_b.id), "SO-1") is None


def test_soft_deleted_order_keeps_line_items(db_session: Session, teams: tuple[Team, Team]) -> None:
    team_a, _ = teams
    ctx = TenantContext(team_id=team_a.id)
    repo = OrderRepository()
    order = repo.create(db_session, ctx, {"number": "SO-2"})
    order.line_items.append(OrderLineItem(name="Widget"))
    db_session.commit()

    repo.delete(db_session, ctx, order.id)
    db_session.commit()

    assert repo.by_number(db_session, ctx, "SO-2") is None
    with pytest.raises(RecordNotFoundError):
        repo.get(db_session, ctx, order.id)
    remaining = db_session.scalars(select(OrderLineItem).where(OrderLineItem.order_id == order.id)).all()
    assert len(remaining) == 1


def test_invoice_and_purchase_order_numbers(db_session: Session, teams: tuple[Team, Team]) -> None:
    team_a, _ = teams
    ctx = TenantContext(team_id=team_a.id)
    vendor = Company(team_id=team_a.id, name="Supplies Ltd")
    db_session.add(vendor)
    db_session.flush()

    invoices = InvoiceRepository()
    invoice = invoices.create(db_session, ctx, {"number": "INV-1", "total": Decimal("42.00")})
    invoice.line_items.append(InvoiceLineItem(name="Hours", quantity=Decimal("2"), line_total=Decimal("42.00")))
    purchase_order = PurchaseOrderRepository().create(db_session, ctx, {"number": "PO-1", "vendor_id": vendor.id})
    purchase_order.items.append(PurchaseOrderItem(description="Paper", unit_cost=Decimal("3.00")))
    db_session.commit()

    loaded = invoices.by_number(db_session, ctx, "INV-1")
    assert loaded is not None
    assert loaded.line_items[0].quantity == Decimal("2")
    assert purchase_order.vendor.name == "Supplies Ltd"

    with pytest.raises(UniqueConstraintViolation):
        invoices.create(db_session, ctx, {"number": "INV-1"})
