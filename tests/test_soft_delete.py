from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_domain import audit
from crm_domain.core.database import Base
from crm_domain.crm.repositories import AddressRepository, NoteRepository, PeopleRepository
from crm_domain.models import Address, NotableEntry, People, Team
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


@pytest.fixture()
def ctx(db_session: Session) -> TenantContext:
    team = Team(name="Acme", slug="acme")
    db_session.add(team)
    db_session.commit()
    return TenantContext(team_id=team.id, user_id=None, correlation_id="cid-soft-delete")


def test_soft_deleted_rows_are_hidden_by_default(db_session: Session, ctx: TenantContext) -> None:
    repo = PeopleRepository()
    jane = repo.create(db_session, ctx, {"name": "Jane"})
    repo.create(db_session, ctx, {"name": "John"})
    db_session.commit()

    repo.delete(db_session, ctx, jane.id)
    db_session.commit()

    assert jane.trashed is True
    assert [row.name for row in repo.list(db_session, ctx)] == ["John"]
    assert [row.name for row in repo.list(db_session, ctx, with_trashed=True)] == ["Jane", "John"]
    assert [row.name for row in repo.list(db_session, ctx, only_trashed=True)] == ["Jane"]
    assert repo.find(db_session, ctx, jane.id) is None
    assert repo.get(db_session, ctx, jane.id, with_trashed=True) is jane


def test_soft_delete_keeps_the_row_and_is_audited(db_session: Session, ctx: TenantContext) -> None:
    repo = PeopleRepository()
    jane = repo.create(db_session, ctx, {"name": "Jane"})
    db_session.commit()

    repo.delete(db_session, ctx, jane.id)
    db_session.commit()

    stored = db_session.scalar(select(People).where(People.id == jane.id))
    assert stored is not None
    assert stored.deleted_at is not None
    entries = audit.entries_for("people", jane.id)
    assert entries[-1]["action"] == "soft_delete"
    assert entries[-1]["correlation_id"] == "cid-soft-delete"


def test_restore_brings_row_back(db_session: Session, ctx: TenantContext) -> None:
    repo = PeopleRepository()
    jane = repo.create(db_session, ctx, {"name": "Jane"})
    repo.delete(db_session, ctx, jane.id)
    db_session.commit()

    restored = repo.restore(db_session, ctx, jane.id)
    db_session.commit()

    assert restored.deleted_at is None
    assert repo.get(db_session, ctx, jane.id).name == "Jane"
    assert audit.entries_for("people", jane.id)[-1]["action"] == "restore"


def test_force_delete_removes_row(db_session: Session, ctx: TenantContext) -> None:
    repo = PeopleRepository()
    jane = repo.create(db_session, ctx, {"name": "Jane"})
    repo.delete(db_session, ctx, jane.id)
    db_session.commit()

    repo.force_delete(db_session, ctx, jane.id)
    db_session.commit()

    assert db_session.get(People, jane.id) is None
    with pytest.raises(RecordNotFoundError):
        repo.get(db_session, ctx, jane.id, with_trashed=True)


def test_soft_delete_does_not_cascade_to_children(db_session: Session, ctx: TenantContext) -> None:
    person = PeopleRepository().create(db_session, ctx, {"name": "Jane"})
    note = NoteRepository().create(
        db_session,
        ctx,
        {"notable_type": "people", "notable_id": person.id, "body": "Met at the expo"},
    )
    db_session.commit()

    PeopleRepository().delete(db_session, ctx, person.id)
    db_session.commit()

    assert NoteRepository().get(db_session, ctx, note.id).deleted_at is None
    assert db_session.get(NotableEntry, note.id) is not None


def test_delete_without_soft_delete_support_is_hard(db_session: Session, ctx: TenantContext) -> None:
    person = PeopleRepository().create(db_session, ctx, {"name": "Jane"})
    address = AddressRepository().create(
        db_session,
        ctx,
        {"addressable_type": "people", "addressable_id": person.id, "city": "Berlin"},
    )
    db_session.commit()

    AddressRepository().delete(db_session, ctx, address.id)
    db_session.commit()

    assert db_session.get(Address, address.id) is None
    with pytest.raises(PersistenceError):
        AddressRepository().restore(db_session, ctx, address.id)
