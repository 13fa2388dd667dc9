from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from crm_domain.engagement.tasks.models import SavedSearch, Task, TaskRecurrence, TaskReminder
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.repository import BaseRepository


class TaskRepository(BaseRepository[Task]):
    model = Task
    resource = "tasks"


class TaskRecurrenceRepository(BaseRepository[TaskRecurrence]):
    model = TaskRecurrence
    resource = "task_recurrences"

    def for_task(self, session: Session, task_id: int) -> TaskRecurrence | None:
        return session.scalar(select(TaskRecurrence).where(TaskRecurrence.task_id == task_id))


class TaskReminderRepository(BaseRepository[TaskReminder]):
    model = TaskReminder
    resource = "task_reminders"

    def due(self, session: Session, ctx: TenantContext, now: datetime) -> Sequence[TaskReminder]:
        """Scheduled reminders whose time has come, oldest first."""

        stmt = (
            select(TaskReminder)
            .join(Task, Task.id == TaskReminder.task_id)
            .where(
                Task.team_id == ctx.team_id,
                TaskReminder.remind_at <= now,
                TaskReminder.sent_at.is_(None),
                TaskReminder.canceled_at.is_(None),
            )
            .order_by(TaskReminder.remind_at.asc(), TaskReminder.id.asc())
        )
        return session.scalars(stmt).all()


class SavedSearchRepository(BaseRepository[SavedSearch]):
    model = SavedSearch
    resource = "saved_searches"
