from __future__ import annotations

from collections.abc import Generator
from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_domain.core.database import Base
from crm_domain.engagement.tasks.schemas import TaskRecurrenceDefine, TaskRecurrenceRead, TaskReminderCreate, TaskReminderRead
from crm_domain.engagement.tasks.service import TaskRecurrenceService, TaskReminderService
from crm_domain.models import Task, TaskRecurrence, TaskReminder, Team, User
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import InvalidStateTransitionError, RecordNotFoundError


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
def seeded(db_session: Session) -> tuple[TenantContext, Task, User]:
    user = User(name="Owner", email="owner@example.com")
    team = Team(name="Acme", slug="acme")
    db_session.add_all([user, team])
    db_session.commit()
    task = Task(team_id=team.id, title="Weekly sync", creator_id=user.id)
    db_session.add(task)
    db_session.commit()
    return TenantContext(team_id=team.id, user_id=user.id), task, user


def test_weekly_recurrence_is_stored_as_declared(db_session: Session, seeded: tuple[TenantContext, Task, User]) -> None:
    ctx, task, _ = seeded

    recurrence = TaskRecurrenceService().define(
        db_session,
        ctx,
        task.id,
        TaskRecurrenceDefine(
            frequency="weekly",
            interval=1,
            days_of_week=[1, 3, 5],
            starts_on=date(2024, 1, 1),
            ends_on=date(2024, 1, 31),
        ),
    )
    db_session.expire_all()

    stored = TaskRecurrenceRead.model_validate(db_session.get(TaskRecurrence, recurrence.id))
    assert stored.task_id == task.id
    assert stored.frequency == "weekly"
    assert stored.interval == 1
    assert stored.days_of_week == [1, 3, 5]
    assert stored.starts_on == date(2024, 1, 1)
    assert stored.ends_on == date(2024, 1, 31)
    assert stored.max_occurrences is None
    assert stored.timezone == "UTC"
    assert db_session.get(Task, task.id).recurrence.id == recurrence.id


def test_redefining_recurrence_updates_the_single_rule(
    db_session: Session,
    seeded: tuple[TenantContext, Task, User],
) -> None:
    ctx, task, _ = seeded
    service = TaskRecurrenceService()
    first = service.define(db_session, ctx, task.id, TaskRecurrenceDefine(frequency="daily", starts_on=date(2024, 1, 1)))
    second = service.define(
        db_session,
        ctx,
        task.id,
        TaskRecurrenceDefine(frequency="monthly", interval=2, starts_on=date(2024, 2, 1), max_occurrences=6),
    )

    assert first.id == second.id
    assert db_session.query(TaskRecurrence).count() == 1
    assert second.frequency == "monthly"
    assert second.max_occurrences == 6


@pytest.mark.parametrize(
    "payload",
    [
        {"frequency": "weekly", "interval": 0, "starts_on": "2024-01-01"},
        {"frequency": "weekly", "days_of_week": [1, 7], "starts_on": "2024-01-01"},
        {"frequency": "weekly", "days_of_week": [1, 1], "starts_on": "2024-01-01"},
        {"frequency": "weekly", "starts_on": "2024-01-31", "ends_on": "2024-01-01"},
        {"frequency": "weekly", "starts_on": "2024-01-01", "max_occurrences": 0},
        {"frequency": "hourly", "starts_on": "2024-01-01"},
    ],
)
def test_invalid_recurrence_is_rejected(payload: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        TaskRecurrenceDefine.model_validate(payload)


def test_database_rejects_reversed_bounds(db_session: Session, seeded: tuple[TenantContext, Task, User]) -> None:
    _, task, _ = seeded
    db_session.add(
        TaskRecurrence(task_id=task.id, frequency="daily", starts_on=date(2024, 2, 1), ends_on=date(2024, 1, 1))
    )

    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


def test_reminder_lifecycle_sent_is_terminal(db_session: Session, seeded: tuple[TenantContext, Task, User]) -> None:
    ctx, task, user = seeded
    service = TaskReminderService()
    reminder = service.schedule(
        db_session,
        ctx,
        task.id,
        TaskReminderCreate(user_id=user.id, remind_at=datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc)),
    )
    assert reminder.state == "scheduled"

    service.mark_sent(db_session, ctx, reminder.id)
    assert reminder.state == "sent"
    assert reminder.status == "sent"

    with pytest.raises(InvalidStateTransitionError):
        service.cancel(db_session, ctx, reminder.id)
    with pytest.raises(InvalidStateTransitionError):
        service.mark_sent(db_session, ctx, reminder.id)

    stored = TaskReminderRead.model_validate(db_session.get(TaskReminder, reminder.id))
    assert stored.sent_at is not None
    assert stored.canceled_at is None


def test_reminder_lifecycle_canceled_is_terminal(
    db_session: Session,
    seeded: tuple[TenantContext, Task, User],
) -> None:
    ctx, task, user = seeded
    service = TaskReminderService()
    reminder = service.schedule(
        db_session,
        ctx,
        task.id,
        TaskReminderCreate(user_id=user.id, remind_at=datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc)),
    )

    service.cancel(db_session, ctx, reminder.id)

    assert reminder.state == "canceled"
    with pytest.raises(InvalidStateTransitionError):
        service.mark_sent(db_session, ctx, reminder.id)
    assert db_session.get(TaskReminder, reminder.id).sent_at is None


def test_database_forbids_both_terminal_timestamps(
    db_session: Session,
    seeded: tuple[TenantContext, Task, User],
) -> None:
    _, task, user = seeded
    now = datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc)
    db_session.add(TaskReminder(task_id=task.id, user_id=user.id, remind_at=now, sent_at=now, canceled_at=now))

    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


def test_due_returns_only_scheduled_reminders_in_tenant(
    db_session: Session,
    seeded: tuple[TenantContext, Task, User],
) -> None:
    ctx, task, user = seeded
    service = TaskReminderService()
    now = datetime(2024, 1, 5, 12, 0, tzinfo=timezone.utc)
    past = service.schedule(db_session, ctx, task.id, TaskReminderCreate(user_id=user.id, remind_at=now - timedelta(hours=1)))
    service.schedule(db_session, ctx, task.id, TaskReminderCreate(user_id=user.id, remind_at=now + timedelta(hours=1)))
    sent = service.schedule(db_session, ctx, task.id, TaskReminderCreate(user_id=user.id, remind_at=now - timedelta(hours=2)))
    service.mark_sent(db_session, ctx, sent.id)

    assert [row.id for row in service.due(db_session, ctx, now)] == [past.id]
    assert service.due(db_session, TenantContext(team_id=ctx.team_id + 100), now) == []


def test_reminder_of_other_tenant_is_not_found(db_session: Session, seeded: tuple[TenantContext, Task, User]) -> None:
    ctx, task, user = seeded
    service = TaskReminderService()
    reminder = service.schedule(
        db_session,
        ctx,
        task.id,
        TaskReminderCreate(user_id=user.id, remind_at=datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc)),
    )
    other = Team(name="Globex", slug="globex")
    db_session.add(other)
    db_session.commit()

    with pytest.raises(RecordNotFoundError):
        service.cancel(db_session, TenantContext(team_id=other.id), reminder.id)


def test_clearing_recurrence_removes_the_rule(db_session: Session, seeded: tuple[TenantContext, Task, User]) -> None:
    ctx, task, _ = seeded
    service = TaskRecurrenceService()
    service.define(db_session, ctx, task.id, TaskRecurrenceDefine(frequency="daily", starts_on=date(2024, 1, 1)))

    service.clear(db_session, ctx, task.id)
    service.clear(db_session, ctx, task.id)
    db_session.expire_all()

    assert db_session.query(TaskRecurrence).count() == 0
    assert db_session.get(Task, task.id).recurrence is None


def test_clearing_recurrence_of_other_tenant_task_is_not_found(
    db_session: Session,
    seeded: tuple[TenantContext, Task, User],
) -> None:
    ctx, task, _ = seeded
    TaskRecurrenceService().define(
        db_session, ctx, task.id, TaskRecurrenceDefine(frequency="daily", starts_on=date(2024, 1, 1))
    )
    other = Team(name="Other", slug="other")
    db_session.add(other)
    db_session.commit()

    with pytest.raises(RecordNotFoundError):
        TaskRecurrenceService().clear(db_session, TenantContext(team_id=other.id), task.id)
    assert db_session.query(TaskRecurrence).count() == 1
