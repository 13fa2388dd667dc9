from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_domain.core.database import Base
from crm_domain.crm.schemas import CompanyPersonRead
from crm_domain.crm.service import CompanyPeopleService
from crm_domain.models import Company, People, Team
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
def ctx(db_session: Session) -> TenantContext:
    team = Team(name="Acme", slug="acme")
    db_session.add(team)
    db_session.commit()
    return TenantContext(team_id=team.id)


def _company(db_session: Session, ctx: TenantContext, name: str) -> Company:
    company = Company(team_id=ctx.team_id, name=name)
    db_session.add(company)
    db_session.commit()
    return company


def _person(db_session: Session, ctx: TenantContext, name: str) -> People:
    person = People(team_id=ctx.team_id, name=name)
    db_session.add(person)
    db_session.commit()
    return person


def test_attach_jane_to_acme_as_owner(db_session: Session, ctx: TenantContext) -> None:
    acme = _company(db_session, ctx, "Acme")
    jane = _person(db_session, ctx, "Jane")
    service = CompanyPeopleService()

    service.attach_person(db_session, ctx, acme.id, jane.id, role="owner")

    rows = service.companies_for(db_session, ctx, jane.id)
    assert len(rows) == 1
    company, pivot = rows[0]
    assert company.name == "Acme"
    assert pivot.role == "owner"
    assert CompanyPersonRead.model_validate(pivot).people_id == jane.id
    assert [person.name for person in acme.people] == ["Jane"]


def test_attaching_same_pair_twice_is_rejected(db_session: Session, ctx: TenantContext) -> None:
    acme = _company(db_session, ctx, "Acme")
    jane = _person(db_session, ctx, "Jane")
    service = CompanyPeopleService()
    service.attach_person(db_session, ctx, acme.id, jane.id, role="owner")

    with pytest.raises(UniqueConstraintViolation) as exc_info:
        service.attach_person(db_session, ctx, acme.id, jane.id, role="buyer")

    assert exc_info.value.fields == ["company_id", "people_id"]
    assert len(service.companies_for(db_session, ctx, jane.id)) == 1


def test_primary_company_is_exclusive(db_session: Session, ctx: TenantContext) -> None:
    acme = _company(db_session, ctx, "Acme")
    globex = _company(db_session, ctx, "Globex")
    jane = _person(db_session, ctx, "Jane")
    service = CompanyPeopleService()

    service.attach_person(db_session, ctx, acme.id, jane.id, is_primary=True)
    service.attach_person(db_session, ctx, globex.id, jane.id, is_primary=True)

    flags = {company.name: pivot.is_primary for company, pivot in service.companies_for(db_session, ctx, jane.id)}
    assert flags == {"Acme": False, "Globex": True}

    service.set_primary(db_session, ctx, acme.id, jane.id)
    rows = service.companies_for(db_session, ctx, jane.id)
    assert rows[0][0].name == "Acme"
    assert [pivot.is_primary for _, pivot in rows] == [True, False]


def test_detach_removes_only_that_pair(db_session: Session, ctx: TenantContext) -> None:
    acme = _company(db_session, ctx, "Acme")
    globex = _company(db_session, ctx, "Globex")
    jane = _person(db_session, ctx, "Jane")
    service = CompanyPeopleService()
    service.attach_person(db_session, ctx, acme.id, jane.id)
    service.attach_person(db_session, ctx, globex.id, jane.id)

    service.detach_person(db_session, ctx, acme.id, jane.id)
    service.detach_person(db_session, ctx, acme.id, jane.id)

    assert [company.name for company, _ in service.companies_for(db_session, ctx, jane.id)] == ["Globex"]


def test_trashed_companies_are_not_listed(db_session: Session, ctx: TenantContext) -> None:
    acme = _company(db_session, ctx, "Acme")
    jane = _person(db_session, ctx, "Jane")
    service = CompanyPeopleService()
    service.attach_person(db_session, ctx, acme.id, jane.id)

    acme.soft_delete()
    db_session.commit()

    assert service.companies_for(db_session, ctx, jane.id) == []


def test_attach_requires_both_sides_in_tenant(db_session: Session, ctx: TenantContext) -> None:
    acme = _company(db_session, ctx, "Acme")
    other = Team(name="Globex", slug="globex")
    db_session.add(other)
    db_session.commit()
    hank = People(team_id=other.id, name="Hank")
    db_session.add(hank)
    db_session.commit()

    with pytest.raises(RecordNotFoundError):
        CompanyPeopleService().attach_person(db_session, ctx, acme.id, hank.id)
