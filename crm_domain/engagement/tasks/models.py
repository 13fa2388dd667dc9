from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm_domain.core.database import Base
from crm_domain.core.mixins import IdMixin, SoftDeleteMixin, TeamScopedMixin, TimestampMixin


task_user = Table(
    "task_user",
    Base.metadata,
    Column("task_id", Integer, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Task(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "tasks"
    __morph_key__ = "task"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="not_started", server_default="not_started")
    priority: Mapped[str] = mapped_column(String(32), nullable=False, default="normal", server_default="normal")
    parent_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    percent_complete: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_milestone: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    creator_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    parent: Mapped[Task | None] = relationship("Task", remote_side="Task.id", back_populates="subtasks")
    subtasks: Mapped[list[Task]] = relationship("Task", back_populates="parent")
    assignees: Mapped[list[User]] = relationship("User", secondary=task_user)
    checklist_items: Mapped[list[TaskChecklistItem]] = relationship(
        "TaskChecklistItem",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TaskChecklistItem.position",
    )
    reminders: Mapped[list[TaskReminder]] = relationship(
        "TaskReminder",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    recurrence: Mapped[TaskRecurrence | None] = relationship(
        "TaskRecurrence",
        back_populates="task",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_tasks_team_status", "team_id", "status"),)


class TaskChecklistItem(IdMixin, TimestampMixin, Base):
    __tablename__ = "task_checklist_items"

    task_id: Mapped[int] = mapped_column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    task: Mapped[Task] = relationship("Task", back_populates="checklist_items")


class TaskRecurrence(IdMixin, TimestampMixin, Base):
    """Declarative repeat rule for a task.

    Nothing here enumerates occurrences; a scheduler outside this package
    materialises due dates from the stored rule.
    """

    __tablename__ = "task_recurrences"

    task_id: Mapped[int] = mapped_column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, unique=True)
    frequency: Mapped[str] = mapped_column(String(16), nullable=False)
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    # 0 = Sunday through 6 = Saturday
    days_of_week: Mapped[list[int] | None] = mapped_column(JSON, nullable=True)
    starts_on: Mapped[date] = mapped_column(Date, nullable=False)
    ends_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    max_occurrences: Mapped[int | None] = mapped_column(Integer, nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC", server_default="UTC")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")

    task: Mapped[Task] = relationship("Task", back_populates="recurrence")

    __table_args__ = (
        CheckConstraint('"interval" >= 1', name="ck_task_recurrences_interval_positive"),
        CheckConstraint("ends_on IS NULL OR ends_on >= starts_on", name="ck_task_recurrences_bounds"),
    )


class TaskReminder(IdMixin, TimestampMixin, Base):
    __tablename__ = "task_reminders"

    task_id: Mapped[int] = mapped_column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    remind_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    channel: Mapped[str] = mapped_column(String(32), nullable=False, default="database", server_default="database")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")

    task: Mapped[Task] = relationship("Task", back_populates="reminders")
    user: Mapped[User] = relationship("User")

    __table_args__ = (
        CheckConstraint(
            "sent_at IS NULL OR canceled_at IS NULL",
            name="ck_task_reminders_single_terminal_state",
        ),
        Index("ix_task_reminders_due", "remind_at", "status"),
    )

    @property
    def state(self) -> str:
        if self.sent_at is not None:
            return "sent"
        if self.canceled_at is not None:
            return "canceled"
        return "scheduled"


class SavedSearch(IdMixin, TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "saved_searches"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    resource: Mapped[str] = mapped_column(String(64), nullable=False)
    query: Mapped[str | None] = mapped_column(Text, nullable=True)
    filters: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
