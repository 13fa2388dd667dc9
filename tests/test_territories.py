from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_domain.business.territory.service import TerritoryService
from crm_domain.core.database import Base
from crm_domain.models import Company, People, Team, Territory, TerritoryRecord
from crm_domain.otel import setup_inmemory_otel
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import RecordNotFoundError


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
def seeded(db_session: Session) -> tuple[TenantContext, Territory, Territory]:
    team = Team(name="Acme", slug="acme")
    db_session.add(team)
    db_session.commit()
    emea = Territory(team_id=team.id, name="EMEA", code="emea")
    dach = Territory(team_id=team.id, name="DACH", code="dach", level=1)
    db_session.add_all([emea, dach])
    db_session.commit()
    dach.parent = emea
    db_session.commit()
    return TenantContext(team_id=team.id), emea, dach


def test_assign_stores_polymorphic_reference(
    db_session: Session,
    seeded: tuple[TenantContext, Territory, Territory],
) -> None:
    ctx, emea, _ = seeded
    acme = Company(team_id=ctx.team_id, name="Acme")
    db_session.add(acme)
    db_session.commit()

    assignment = TerritoryService().assign(db_session, ctx, emea.id, acme, reason="HQ in Berlin")

    assert assignment.record_type == "company"
    assert assignment.record_id == acme.id
    assert assignment.assigned_at is not None
    assert assignment.assignment_reason == "HQ in Berlin"


def test_primary_assignment_is_exclusive(
    db_session: Session,
    seeded: tuple[TenantContext, Territory, Territory],
) -> None:
    ctx, emea, dach = seeded
    jane = People(team_id=ctx.team_id, name="Jane")
    db_session.add(jane)
    db_session.commit()
    service = TerritoryService()

    service.assign(db_session, ctx, emea.id, jane, is_primary=True)
    service.assign(db_session, ctx, dach.id, jane, is_primary=True)

    flags = {
        row.territory_id: row.is_primary
        for row in db_session.scalars(select(TerritoryRecord).where(TerritoryRecord.record_id == jane.id))
    }
    assert flags == {emea.id: False, dach.id: True}


def test_reassigning_updates_existing_row(
    db_session: Session,
    seeded: tuple[TenantContext, Territory, Territory],
) -> None:
    ctx, emea, _ = seeded
    jane = People(team_id=ctx.team_id, name="Jane")
    db_session.add(jane)
    db_session.commit()
    service = TerritoryService()

    first = service.assign(db_session, ctx, emea.id, jane)
    second = service.assign(db_session, ctx, emea.id, jane, reason="Moved")

    assert first.id == second.id
    assert len(db_session.scalars(select(TerritoryRecord)).all()) == 1


def test_records_for_skips_absent_targets(
    db_session: Session,
    seeded: tuple[TenantContext, Territory, Territory],
) -> None:
    ctx, emea, _ = seeded
    jane = People(team_id=ctx.team_id, name="Jane")
    john = People(team_id=ctx.team_id, name="John")
    acme = Company(team_id=ctx.team_id, name="Acme")
    db_session.add_all([jane, john, acme])
    db_session.commit()
    service = TerritoryService()
    for record in (jane, john, acme):
        service.assign(db_session, ctx, emea.id, record)

    john.soft_delete()
    db_session.commit()

    records = service.records_for(db_session, ctx, emea.id)
    assert [(type(item).__name__, item.name) for item in records] == [("People", "Jane"), ("Company", "Acme")]


def test_assign_rejects_record_of_other_tenant(
    db_session: Session,
    seeded: tuple[TenantContext, Territory, Territory],
) -> None:
    ctx, emea, _ = seeded
    other = Team(name="Globex", slug="globex")
    db_session.add(other)
    db_session.commit()
    hank = People(team_id=other.id, name="Hank")
    db_session.add(hank)
    db_session.commit()

    with pytest.raises(RecordNotFoundError):
        TerritoryService().assign(db_session, ctx, emea.id, hank)

    assert db_session.scalars(select(TerritoryRecord)).all() == []


def test_territory_hierarchy_and_records_view(
    db_session: Session,
    seeded: tuple[TenantContext, Territory, Territory],
) -> None:
    ctx, emea, dach = seeded
    jane = People(team_id=ctx.team_id, name="Jane")
    db_session.add(jane)
    db_session.commit()
    TerritoryService().assign(db_session, ctx, dach.id, jane)
    db_session.expire_all()

    assert [child.code for child in db_session.get(Territory, emea.id).children] == ["dach"]
    assert [row.record_id for row in db_session.get(Territory, dach.id).records] == [jane.id]


def test_assign_emits_span(db_session: Session, seeded: tuple[TenantContext, Territory, Territory]) -> None:
    exporter = setup_inmemory_otel()
    exporter.clear()
    ctx, emea, _ = seeded
    jane = People(team_id=ctx.team_id, name="Jane")
    db_session.add(jane)
    db_session.commit()

    TerritoryService().assign(db_session, ctx, emea.id, jane)

    spans = [span for span in exporter.get_finished_spans() if span.name == "crm.territory.assign"]
    assert len(spans) == 1
    assert spans[0].attributes["crm.record_type"] == "people"


def test_unassign_removes_only_that_assignment(
    db_session: Session,
    seeded: tuple[TenantContext, Territory, Territory],
) -> None:
    ctx, emea, dach = seeded
    jane = People(team_id=ctx.team_id, name="Jane")
    db_session.add(jane)
    db_session.commit()
    service = TerritoryService()
    service.assign(db_session, ctx, emea.id, jane)
    service.assign(db_session, ctx, dach.id, jane)

    service.unassign(db_session, ctx, emea.id, jane)
    service.unassign(db_session, ctx, emea.id, jane)

    assert [row.territory_id for row in db_session.scalars(select(TerritoryRecord))] == [dach.id]
    assert service.records_for(db_session, ctx, emea.id) == []
    assert [record.id for record in service.records_for(db_session, ctx, dach.id)] == [jane.id]


def test_unassign_in_other_tenant_territory_is_not_found(
    db_session: Session,
    seeded: tuple[TenantContext, Territory, Territory],
) -> None:
    ctx, emea, _ = seeded
    jane = People(team_id=ctx.team_id, name="Jane")
    other = Team(name="Other", slug="other")
    db_session.add_all([jane, other])
    db_session.commit()
    TerritoryService().assign(db_session, ctx, emea.id, jane)

    with pytest.raises(RecordNotFoundError):
        TerritoryService().unassign(db_session, TenantContext(team_id=other.id), emea.id, jane)
    assert len(db_session.scalars(select(TerritoryRecord)).all()) == 1
