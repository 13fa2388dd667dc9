from __future__ import annotations

from collections.abc import Generator

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import create_engine, delete, insert, inspect, select, update
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_domain.core.database import Base
from crm_domain.crm.repositories import CustomerRepository
from crm_domain.models import Company, Customer, People, Team
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import ReadOnlyModelError


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
def seeded(db_session: Session) -> tuple[TenantContext, Company, People]:
    team = Team(name="Acme", slug="acme")
    other = Team(name="Globex", slug="globex")
    db_session.add_all([team, other])
    db_session.commit()

    company = Company(team_id=team.id, name="Acme Corp", primary_email="hello@acme.test", phone="+1 555 0100")
    person = People(team_id=team.id, name="Jane Doe", primary_email="jane@acme.test", phone_office="+1 555 0101")
    gone = People(team_id=team.id, name="Old Contact")
    foreign = Company(team_id=other.id, name="Globex")
    db_session.add_all([company, person, gone, foreign])
    db_session.commit()
    gone.soft_delete()
    db_session.commit()
    return TenantContext(team_id=team.id), company, person


def _rejections(operation: str) -> float:
    return (
        REGISTRY.get_sample_value(
            "read_only_write_rejections_count_total",
            {"resource": "customers_view", "operation": operation},
        )
        or 0.0
    )


def test_view_is_created_with_metadata(db_session: Session) -> None:
    assert "customers_view" in inspect(db_session.get_bind()).get_view_names()
    assert "customers_view" not in Base.metadata.tables


def test_view_unions_companies_and_people(db_session: Session, seeded: tuple[TenantContext, Company, People]) -> None:
    ctx, company, person = seeded

    rows = CustomerRepository().list(db_session, ctx)

    assert {row.uid for row in rows} == {f"company-{company.id}", f"person-{person.id}"}
    by_type = {row.type: row for row in rows}
    assert by_type["company"].entity_id == company.id
    assert by_type["company"].email == "hello@acme.test"
    assert by_type["person"].name == "Jane Doe"
    assert by_type["person"].phone == "+1 555 0101"


def test_uid_is_unique_when_ids_collide(db_session: Session, seeded: tuple[TenantContext, Company, People]) -> None:
    ctx, company, person = seeded
    assert company.id == person.id

    uids = [row.uid for row in CustomerRepository().list(db_session, ctx)]
    assert len(uids) == len(set(uids))


def test_insert_is_rejected_before_reaching_database(db_session: Session) -> None:
    before = _rejections("insert")
    db_session.add(Customer(uid="person-99", entity_id=99, team_id=1, type="person", name="Ghost"))

    with pytest.raises(ReadOnlyModelError):
        db_session.flush()

    assert _rejections("insert") == before + 1
    db_session.rollback()


def test_update_and_delete_of_loaded_row_are_rejected(
    db_session: Session,
    seeded: tuple[TenantContext, Company, People],
) -> None:
    ctx, _, person = seeded
    customer = CustomerRepository().get(db_session, ctx, f"person-{person.id}")

    customer.name = "Renamed"
    with pytest.raises(ReadOnlyModelError):
        db_session.flush()
    db_session.rollback()

    db_session.delete(customer)
    with pytest.raises(ReadOnlyModelError):
        db_session.flush()
    db_session.rollback()

    assert db_session.get(People, person.id).name == "Jane Doe"


@pytest.mark.parametrize(
    "statement",
    [
        insert(Customer).values(uid="x-1", entity_id=1, team_id=1, type="person", name="x"),
        update(Customer).values(name="x"),
        delete(Customer),
    ],
)
def test_orm_dml_statements_are_rejected(db_session: Session, statement: object) -> None:
    with pytest.raises(ReadOnlyModelError):
        db_session.execute(statement)


def test_repository_writes_raise(db_session: Session, seeded: tuple[TenantContext, Company, People]) -> None:
    ctx, company, _ = seeded
    repo = CustomerRepository()

    with pytest.raises(ReadOnlyModelError):
        repo.create(db_session, ctx, {"uid": "company-77", "name": "Nope"})
    with pytest.raises(ReadOnlyModelError):
        repo.update(db_session, ctx, f"company-{company.id}", {"name": "Nope"})
    with pytest.raises(ReadOnlyModelError):
        repo.delete(db_session, ctx, f"company-{company.id}")


def test_view_reflects_source_changes(db_session: Session, seeded: tuple[TenantContext, Company, People]) -> None:
    ctx, company, _ = seeded
    company.name = "Acme Holdings"
    db_session.commit()

    customer = db_session.scalar(select(Customer).where(Customer.uid == f"company-{company.id}"))
    assert customer is not None
    assert customer.name == "Acme Holdings"
    assert CustomerRepository().find(db_session, TenantContext(team_id=ctx.team_id + 1), customer.uid) is None
