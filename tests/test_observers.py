from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_domain.context import reset_correlation_id, set_correlation_id
from crm_domain.core.database import Base
from crm_domain.core.events import WILDCARD, InternalEvent, event_bus
from crm_domain.events import published_events
from crm_domain.models import Company, Order, People, Team
from crm_domain.models.observers import OBSERVED_MODELS, publish_entity_event
from crm_domain.platform.observers import observe, observers_for, unobserve


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


@pytest.fixture(autouse=True)
def clear_events() -> Generator[None, None, None]:
    published_events.clear()
    yield
    published_events.clear()
    event_bus.reset()


@pytest.fixture()
def team(db_session: Session) -> Team:
    team = Team(name="Acme", slug="acme")
    db_session.add(team)
    db_session.commit()
    return team


def _event_types() -> list[str]:
    return [envelope["event_type"] for envelope in published_events]


def test_people_and_orders_are_observed_by_default() -> None:
    assert People in OBSERVED_MODELS
    assert Order in OBSERVED_MODELS
    assert publish_entity_event in observers_for(People)
    assert publish_entity_event in observers_for(Order)
    assert observers_for(Company) == []


def test_lifecycle_events_are_published_after_commit(db_session: Session, team: Team) -> None:
    jane = People(team_id=team.id, name="Jane")
    db_session.add(jane)
    db_session.flush()
    assert published_events == []

    db_session.commit()
    jane.job_title = "CTO"
    db_session.commit()
    jane.soft_delete()
    db_session.commit()
    jane.restore()
    db_session.commit()
    db_session.delete(jane)
    db_session.commit()

    assert _event_types() == [
        "crm.people.created",
        "crm.people.updated",
        "crm.people.deleted",
        "crm.people.restored",
        "crm.people.deleted",
    ]
    created = published_events[0]
    assert created["team_id"] == team.id
    assert created["payload"]["name"] == "Jane"


def test_rolled_back_work_is_never_observed(db_session: Session, team: Team) -> None:
    db_session.add(People(team_id=team.id, name="Ghost"))
    db_session.flush()
    db_session.rollback()

    db_session.add(Order(team_id=team.id, number="SO-1"))
    db_session.commit()

    assert _event_types() == ["crm.order.created"]


def test_events_reach_bus_subscribers_with_correlation_id(db_session: Session, team: Team) -> None:
    received: list[InternalEvent] = []
    event_bus.subscribe("crm.order.created", received.append)
    token = set_correlation_id("cid-order")
    try:
        db_session.add(Order(team_id=team.id, number="SO-2"))
        db_session.commit()
    finally:
        reset_correlation_id(token)

    assert len(received) == 1
    assert received[0].payload["correlation_id"] == "cid-order"
    assert received[0].payload["payload"]["number"] == "SO-2"


def test_custom_observer_receives_snapshot(db_session: Session, team: Team) -> None:
    calls: list[tuple[str, type, dict[str, Any]]] = []

    def callback(operation: str, model: type, snapshot: dict[str, Any]) -> None:
        calls.append((operation, model, snapshot))

    observe(Company, callback)
    try:
        db_session.add(Company(team_id=team.id, name="Acme"))
        db_session.commit()
    finally:
        unobserve(Company, callback)

    assert [(operation, model) for operation, model, _ in calls] == [("created", Company)]
    assert calls[0][2]["name"] == "Acme"
    assert observers_for(Company) == []


def test_wildcard_subscribers_see_every_entity_event(db_session: Session, team: Team) -> None:
    seen: list[str] = []
    event_bus.subscribe(WILDCARD, lambda event: seen.append(event.name))

    db_session.add(People(team_id=team.id, name="Jane"))
    db_session.add(Order(team_id=team.id, number="SO-3"))
    db_session.commit()

    assert sorted(seen) == ["crm.order.created", "crm.people.created"]
