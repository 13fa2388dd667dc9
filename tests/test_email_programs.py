from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_domain.communication.service import EmailProgramService
from crm_domain.core.database import Base
from crm_domain.models import (
    EmailProgram,
    EmailProgramBounce,
    EmailProgramRecipient,
    EmailProgramUnsubscribe,
    People,
    Team,
)
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import AuthorizationError, PersistenceError, RecordNotFoundError


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
def seeded(db_session: Session) -> tuple[TenantContext, EmailProgram, EmailProgramRecipient]:
    team = Team(name="Acme", slug="acme")
    db_session.add(team)
    db_session.commit()
    jane = People(team_id=team.id, name="Jane", primary_email="jane@acme.test")
    program = EmailProgram(team_id=team.id, name="Onboarding", type="drip", status="active")
    db_session.add_all([jane, program])
    db_session.commit()
    recipient = EmailProgramRecipient(
        email_program_id=program.id,
        email="jane@acme.test",
        first_name="Jane",
        recipient_type="people",
        recipient_id=jane.id,
        status="sent",
    )
    db_session.add(recipient)
    program.total_recipients = 1
    db_session.commit()
    return TenantContext(team_id=team.id), program, recipient


def test_bounce_links_recipient_and_counts(
    db_session: Session,
    seeded: tuple[TenantContext, EmailProgram, EmailProgramRecipient],
) -> None:
    ctx, program, recipient = seeded

    bounce = EmailProgramService().record_bounce(
        db_session,
        ctx,
        program.id,
        "Jane@Acme.test",
        "hard",
        bounce_reason="mailbox does not exist",
        raw_message={"smtp": "550 5.1.1"},
    )

    assert bounce.email_program_recipient_id == recipient.id
    assert bounce.raw_message == {"smtp": "550 5.1.1"}
    refreshed = db_session.get(EmailProgramRecipient, recipient.id)
    assert refreshed.status == "bounced"
    assert refreshed.bounce_type == "hard"
    assert refreshed.bounced_at is not None
    assert db_session.get(EmailProgram, program.id).total_bounced == 1


def test_bounce_for_unknown_address_is_still_recorded(
    db_session: Session,
    seeded: tuple[TenantContext, EmailProgram, EmailProgramRecipient],
) -> None:
    ctx, program, _ = seeded

    bounce = EmailProgramService().record_bounce(db_session, ctx, program.id, "ghost@acme.test", "soft")

    assert bounce.email_program_recipient_id is None
    assert db_session.get(EmailProgram, program.id).total_bounced == 1
    assert [row.email for row in db_session.get(EmailProgram, program.id).bounces] == ["ghost@acme.test"]


def test_unknown_bounce_type_is_rejected(
    db_session: Session,
    seeded: tuple[TenantContext, EmailProgram, EmailProgramRecipient],
) -> None:
    ctx, program, _ = seeded

    with pytest.raises(PersistenceError):
        EmailProgramService().record_bounce(db_session, ctx, program.id, "jane@acme.test", "bored")

    assert db_session.scalars(select(EmailProgramBounce)).all() == []


def test_unsubscribe_is_idempotent_per_team_and_email(
    db_session: Session,
    seeded: tuple[TenantContext, EmailProgram, EmailProgramRecipient],
) -> None:
    ctx, program, recipient = seeded
    service = EmailProgramService()

    first = service.unsubscribe(db_session, ctx, "jane@acme.test", program.id, reason="too many emails")
    second = service.unsubscribe(db_session, ctx, "JANE@acme.test", program.id)

    assert first.id == second.id
    assert second.reason == "too many emails"
    assert len(db_session.scalars(select(EmailProgramUnsubscribe)).all()) == 1
    assert db_session.get(EmailProgram, program.id).total_unsubscribed == 1
    assert db_session.get(EmailProgramRecipient, recipient.id).status == "unsubscribed"
    assert service.is_unsubscribed(db_session, ctx, "Jane@Acme.test") is True


def test_unsubscribe_is_scoped_to_tenant(
    db_session: Session,
    seeded: tuple[TenantContext, EmailProgram, EmailProgramRecipient],
) -> None:
    ctx, _, _ = seeded
    other = Team(name="Globex", slug="globex")
    db_session.add(other)
    db_session.commit()
    service = EmailProgramService()

    service.unsubscribe(db_session, ctx, "jane@acme.test")

    assert service.is_unsubscribed(db_session, TenantContext(team_id=other.id), "jane@acme.test") is False
    with pytest.raises(AuthorizationError):
        service.unsubscribe(db_session, TenantContext(team_id=None), "jane@acme.test")


def test_program_of_other_tenant_is_not_found(
    db_session: Session,
    seeded: tuple[TenantContext, EmailProgram, EmailProgramRecipient],
) -> None:
    _, program, _ = seeded
    other = Team(name="Globex", slug="globex")
    db_session.add(other)
    db_session.commit()

    with pytest.raises(RecordNotFoundError):
        EmailProgramService().record_bounce(db_session, TenantContext(team_id=other.id), program.id, "x@y.test", "hard")
