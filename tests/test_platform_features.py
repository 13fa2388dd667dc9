from __future__ import annotations

from collections.abc import Generator
from datetime import date

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.dialects import mysql, oracle, postgresql
from sqlalchemy.exc import CompileError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_domain.core.database import Base
from crm_domain.models import CustomField, FeatureFlagSegment, LeadSource, People, Team
from crm_domain.platform.custom_fields import CustomFieldRepository
from crm_domain.platform.feature_flags import FeatureSegmentRepository
from crm_domain.platform.reference import sync_reference_table
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import PersistenceError, RecordNotFoundError


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


def test_feature_segments_match_team_membership(db_session: Session) -> None:
    db_session.add_all(
        [
            FeatureFlagSegment(feature="new-pipeline", values=[1, 2]),
            FeatureFlagSegment(feature="ai-summaries", values=[2, 12]),
            FeatureFlagSegment(feature="legacy-import", values=[1], active=False),
            FeatureFlagSegment(feature="beta", scope="user_id", values=[1]),
        ]
    )
    db_session.commit()
    repo = FeatureSegmentRepository()

    assert [row.feature for row in repo.for_team(db_session, 1)] == ["new-pipeline"]
    assert [row.feature for row in repo.for_team(db_session, 1, active_only=False)] == ["new-pipeline", "legacy-import"]
    assert [row.feature for row in repo.for_team(db_session, 12)] == ["ai-summaries"]
    assert repo.for_team(db_session, 3) == []
    assert repo.is_enabled(db_session, "ai-summaries", 2) is True
    assert repo.is_enabled(db_session, "ai-summaries", 1) is False


def test_json_membership_renders_per_dialect() -> None:
    stmt = select(FeatureFlagSegment.id).where(FeatureFlagSegment.applies_to_team(5))

    assert "@>" in str(stmt.compile(dialect=postgresql.dialect()))
    assert "JSON_CONTAINS" in str(stmt.compile(dialect=mysql.dialect()))


def test_json_membership_unsupported_dialect_raises() -> None:
    stmt = select(FeatureFlagSegment.id).where(FeatureFlagSegment.applies_to_team(5))
    with pytest.raises(CompileError):
        stmt.compile(dialect=oracle.dialect())


def test_reference_table_sync_replaces_rows(db_session: Session) -> None:
    db_session.add(LeadSource(id=99, key="stale", name="Stale", sort_order=99))
    db_session.commit()

    count = sync_reference_table(db_session, LeadSource)

    rows = db_session.scalars(select(LeadSource).order_by(LeadSource.sort_order)).all()
    assert count == len(LeadSource.__rows__)
    assert [row.key for row in rows] == [row["key"] for row in LeadSource.__rows__]
    assert sync_reference_table(db_session, LeadSource) == count


def test_custom_field_values_are_typed_and_scoped(db_session: Session) -> None:
    team = Team(name="Acme", slug="acme")
    db_session.add(team)
    db_session.commit()
    ctx = TenantContext(team_id=team.id)
    jane = People(team_id=team.id, name="Jane")
    db_session.add(jane)
    db_session.commit()
    repo = CustomFieldRepository()
    tier = repo.create(db_session, ctx, {"entity_type": "people", "code": "tier", "name": "Tier", "type": "select"})
    renewal = repo.create(db_session, ctx, {"entity_type": "people", "code": "renewal", "name": "Renewal", "type": "date"})
    seats = repo.create(db_session, ctx, {"entity_type": "people", "code": "seats", "name": "Seats", "type": "number"})
    db_session.commit()

    repo.set_value(db_session, ctx, tier.id, jane, ["gold"])
    repo.set_value(db_session, ctx, renewal.id, jane, date(2025, 6, 30))
    value = repo.set_value(db_session, ctx, seats.id, jane, 10)
    repo.set_value(db_session, ctx, seats.id, jane, 12)
    db_session.commit()

    assert value.integer_value == 12
    assert repo.values_for(db_session, ctx, jane) == {"tier": ["gold"], "renewal": date(2025, 6, 30), "seats": 12}
    assert repo.values_for(db_session, TenantContext(team_id=team.id + 1), jane) == {}


def test_custom_field_rejects_wrong_entity_and_tenant(db_session: Session) -> None:
    team = Team(name="Acme", slug="acme")
    other = Team(name="Globex", slug="globex")
    db_session.add_all([team, other])
    db_session.commit()
    ctx = TenantContext(team_id=team.id)
    field = CustomFieldRepository().create(
        db_session,
        ctx,
        {"entity_type": "company", "code": "tier", "name": "Tier", "type": "text"},
    )
    jane = People(team_id=team.id, name="Jane")
    db_session.add(jane)
    db_session.commit()

    with pytest.raises(PersistenceError):
        CustomFieldRepository().set_value(db_session, ctx, field.id, jane, "gold")
    with pytest.raises(RecordNotFoundError):
        CustomFieldRepository().set_value(db_session, TenantContext(team_id=other.id), field.id, jane, "gold")
    assert db_session.get(CustomField, field.id) is not None
