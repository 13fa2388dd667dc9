from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crm_domain.core.database import utcnow
from crm_domain.engagement.tasks.models import TaskRecurrence, TaskReminder
from crm_domain.engagement.tasks.repositories import (
    TaskRecurrenceRepository,
    TaskReminderRepository,
    TaskRepository,
)
from crm_domain.engagement.tasks.schemas import TaskRecurrenceDefine, TaskReminderCreate
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import InvalidStateTransitionError, RecordNotFoundError
from crm_domain.platform.security.repository import translate_integrity_error


logger = logging.getLogger("crm_domain.tasks")


@dataclass(slots=True)
class TaskRecurrenceService:
    """Stores a task's repeat rule. Occurrences are produced by an external scheduler."""

    task_repository: TaskRepository = TaskRepository()
    recurrence_repository: TaskRecurrenceRepository = TaskRecurrenceRepository()

    def define(
        self,
        session: Session,
        ctx: TenantContext,
        task_id: int,
        payload: TaskRecurrenceDefine,
    ) -> TaskRecurrence:
        task = self.task_repository.get(session, ctx, task_id)
        recurrence = self.recurrence_repository.for_task(session, task.id)
        values = payload.model_dump()
        if recurrence is None:
            recurrence = TaskRecurrence(task_id=task.id, **values)
            session.add(recurrence)
        else:
            for field_name, value in values.items():
                setattr(recurrence, field_name, value)

        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise translate_integrity_error(self.recurrence_repository.resource, exc) from exc

        logger.info(
            "task.recurrence_defined",
            extra={"entity": "TaskRecurrence", "entity_id": recurrence.id, "team_id": ctx.team_id, "operation": "define"},
        )
        return recurrence

    def clear(self, session: Session, ctx: TenantContext, task_id: int) -> None:
        task = self.task_repository.get(session, ctx, task_id)
        recurrence = self.recurrence_repository.for_task(session, task.id)
        if recurrence is None:
            return
        session.delete(recurrence)
        session.commit()


@dataclass(slots=True)
class TaskReminderService:
    task_repository: TaskRepository = TaskRepository()
    reminder_repository: TaskReminderRepository = TaskReminderRepository()

    def schedule(
        self,
        session: Session,
        ctx: TenantContext,
        task_id: int,
        payload: TaskReminderCreate,
    ) -> TaskReminder:
        task = self.task_repository.get(session, ctx, task_id)
        reminder = TaskReminder(
            task_id=task.id,
            user_id=payload.user_id,
            remind_at=payload.remind_at,
            channel=payload.channel,
            status="pending",
        )
        session.add(reminder)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise translate_integrity_error(self.reminder_repository.resource, exc) from exc
        return reminder

    def mark_sent(
        self,
        session: Session,
        ctx: TenantContext,
        reminder_id: int,
        sent_at: datetime | None = None,
    ) -> TaskReminder:
        reminder = self._get(session, ctx, reminder_id)
        self._ensure_scheduled(reminder, "sent")
        reminder.sent_at = sent_at or utcnow()
        reminder.status = "sent"
        session.commit()
        logger.info(
            "task.reminder_sent",
            extra={"entity": "TaskReminder", "entity_id": reminder.id, "team_id": ctx.team_id, "operation": "send"},
        )
        return reminder

    def cancel(
        self,
        session: Session,
        ctx: TenantContext,
        reminder_id: int,
        canceled_at: datetime | None = None,
    ) -> TaskReminder:
        reminder = self._get(session, ctx, reminder_id)
        self._ensure_scheduled(reminder, "canceled")
        reminder.canceled_at = canceled_at or utcnow()
        reminder.status = "canceled"
        session.commit()
        return reminder

    def due(self, session: Session, ctx: TenantContext, now: datetime | None = None) -> Sequence[TaskReminder]:
        return self.reminder_repository.due(session, ctx, now or utcnow())

    def _get(self, session: Session, ctx: TenantContext, reminder_id: int) -> TaskReminder:
        reminder = session.get(TaskReminder, reminder_id)
        if reminder is None or self.task_repository.find(session, ctx, reminder.task_id) is None:
            raise RecordNotFoundError(self.reminder_repository.resource, reminder_id)
        return reminder

    @staticmethod
    def _ensure_scheduled(reminder: TaskReminder, target: str) -> None:
        if reminder.state != "scheduled":
            raise InvalidStateTransitionError(
                f"Reminder {reminder.id} is already {reminder.state}; cannot mark it {target}"
            )
