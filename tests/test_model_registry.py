from __future__ import annotations

from collections.abc import Generator

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_domain.core.config import get_settings
from crm_domain.core.database import Base
from crm_domain.crm.repositories import PeopleRepository
from crm_domain.models import (
    Address,
    Company,
    Contact,
    Deal,
    Email,
    EntityKind,
    InvoiceItem,
    InvoiceLineItem,
    KnowledgeArticle,
    Label,
    Opportunity,
    OrderLineItem,
    OrderProduct,
    Organisation,
    People,
    Person,
    QuoteLineItem,
    QuoteProduct,
    Tag,
    Team,
    morph_key_for,
    resolve_model,
    resolve_reference,
)
from crm_domain.models.registry import model_for_morph_type, morph_types
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import ReferentialIntegrityError, TenantScopeError, UnknownMorphTypeError


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


def _failures(reason: str) -> float:
    return REGISTRY.get_sample_value("morph_resolution_failures_count_total", {"reason": reason}) or 0.0


def _team(db_session: Session, slug: str = "acme") -> Team:
    team = Team(name=slug.title(), slug=slug)
    db_session.add(team)
    db_session.commit()
    return team


def test_alias_names_are_the_canonical_classes() -> None:
    assert Contact is People
    assert Person is People
    assert Deal is Opportunity
    assert Organisation is Company
    assert Label is Tag
    assert OrderProduct is OrderLineItem
    assert QuoteProduct is QuoteLineItem
    assert InvoiceItem is InvoiceLineItem
    assert Contact.__table__ is People.__table__


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("People", People),
        ("contact", People),
        ("Person", People),
        ("Deal", Opportunity),
        ("opportunities", Opportunity),
        ("ORGANISATION", Company),
        ("label", Tag),
        ("order_product", OrderLineItem),
        ("QuoteProduct", QuoteLineItem),
        ("invoice-item", InvoiceLineItem),
        ("knowledge_article", KnowledgeArticle),
    ],
)
def test_resolve_model_accepts_canonical_and_alias_names(name: str, expected: type) -> None:
    assert resolve_model(name) is expected


def test_resolve_model_unknown_name_raises() -> None:
    before = _failures("unknown_model")

    with pytest.raises(UnknownMorphTypeError):
        resolve_model("Spaceship")

    assert _failures("unknown_model") == before + 1


def test_write_through_alias_is_visible_through_canonical(db_session: Session) -> None:
    team = _team(db_session)
    ctx = TenantContext(team_id=team.id)

    contact = Contact(team_id=team.id, name="Jane Doe", primary_email="jane@example.com")
    db_session.add(contact)
    db_session.commit()
    contact_id = contact.id
    db_session.expunge_all()

    loaded = PeopleRepository().get(db_session, ctx, contact_id)
    assert isinstance(loaded, People)
    assert loaded.primary_email == "jane@example.com"
    assert db_session.scalar(select(Person).where(Person.id == contact_id)) is loaded


def test_every_entity_kind_is_registered() -> None:
    assert set(morph_types()) == {kind.value for kind in EntityKind}
    assert model_for_morph_type(EntityKind.PEOPLE) is People
    assert model_for_morph_type("company") is Company
    assert morph_key_for(Contact(name="x")) == EntityKind.PEOPLE


def test_morph_key_for_unregistered_model_raises() -> None:
    with pytest.raises(UnknownMorphTypeError):
        morph_key_for(Email)


def test_resolve_reference_unknown_type_raises(db_session: Session) -> None:
    before = _failures("unknown_type")

    with pytest.raises(UnknownMorphTypeError):
        resolve_reference(db_session, "spaceship", 1)

    assert _failures("unknown_type") == before + 1


def test_resolve_reference_absent_target_returns_none(db_session: Session) -> None:
    team = _team(db_session)
    other = _team(db_session, "globex")
    person = People(team_id=team.id, name="Jane")
    foreign = People(team_id=other.id, name="Hank")
    trashed = People(team_id=team.id, name="Gone")
    db_session.add_all([person, foreign, trashed])
    db_session.commit()
    trashed.soft_delete()
    db_session.commit()

    ctx = TenantContext(team_id=team.id)
    assert resolve_reference(db_session, EntityKind.PEOPLE, person.id, ctx=ctx) is person
    assert resolve_reference(db_session, "people", 9999, ctx=ctx) is None
    assert resolve_reference(db_session, "people", foreign.id, ctx=ctx) is None
    assert resolve_reference(db_session, "people", trashed.id, ctx=ctx) is None
    assert resolve_reference(db_session, "people", trashed.id, ctx=ctx, with_trashed=True) is trashed


def test_flush_rejects_unknown_discriminator(db_session: Session) -> None:
    team = _team(db_session)
    db_session.add(Email(team_id=team.id, emailable_type="spaceship", emailable_id=1, email="x@example.com"))

    with pytest.raises(UnknownMorphTypeError):
        db_session.flush()


def test_flush_rejects_missing_target(db_session: Session) -> None:
    team = _team(db_session)
    db_session.add(Email(team_id=team.id, emailable_type="people", emailable_id=4242, email="x@example.com"))

    with pytest.raises(ReferentialIntegrityError):
        db_session.flush()


def test_flush_rejects_target_owned_by_another_team(db_session: Session) -> None:
    team_a = _team(db_session, "team-a")
    team_b = _team(db_session, "team-b")
    outsider = People(team_id=team_b.id, name="Bob")
    db_session.add(outsider)
    db_session.commit()
    before = _failures("cross_tenant")

    db_session.add(Address(team_id=team_a.id, addressable_type="people", addressable_id=outsider.id, city="Oslo"))
    with pytest.raises(TenantScopeError):
        db_session.flush()
    db_session.rollback()

    assert _failures("cross_tenant") == before + 1
    assert db_session.scalars(select(Address)).all() == []


def test_flush_rejects_moving_a_reference_across_teams(db_session: Session) -> None:
    team_a = _team(db_session, "team-a")
    team_b = _team(db_session, "team-b")
    jane = People(team_id=team_a.id, name="Jane")
    bob = People(team_id=team_b.id, name="Bob")
    db_session.add_all([jane, bob])
    db_session.flush()
    email = Email(team_id=team_a.id, emailable_type="people", emailable_id=jane.id, email="jane@example.com")
    db_session.add(email)
    db_session.commit()

    email.emailable_id = bob.id
    with pytest.raises(TenantScopeError):
        db_session.flush()


def test_cross_team_target_rejected_even_without_target_enforcement(
    db_session: Session, monkeypatch: pytest.MonkeyPatch
) -> None:
    team_a = _team(db_session, "team-a")
    team_b = _team(db_session, "team-b")
    outsider = People(team_id=team_b.id, name="Bob")
    db_session.add(outsider)
    db_session.commit()
    monkeypatch.setenv("ENFORCE_MORPH_INTEGRITY", "false")
    get_settings.cache_clear()
    try:
        db_session.add(Email(team_id=team_a.id, emailable_type="people", emailable_id=4242, email="a@example.com"))
        db_session.flush()
        db_session.add(
            Email(team_id=team_a.id, emailable_type="people", emailable_id=outsider.id, email="b@example.com")
        )
        with pytest.raises(TenantScopeError):
            db_session.flush()
    finally:
        get_settings.cache_clear()


def test_owner_side_views_read_polymorphic_rows(db_session: Session) -> None:
    team = _team(db_session)
    person = People(team_id=team.id, name="Jane")
    company = Company(team_id=team.id, name="Acme")
    db_session.add_all([person, company])
    db_session.flush()
    db_session.add_all(
        [
            Email(team_id=team.id, emailable_type="people", emailable_id=person.id, email="jane@example.com"),
            Email(team_id=team.id, emailable_type="company", emailable_id=company.id, email="info@acme.test"),
        ]
    )
    db_session.commit()
    db_session.expire_all()

    assert [row.email for row in person.emails] == ["jane@example.com"]
    assert [row.email for row in company.emails] == ["info@acme.test"]
