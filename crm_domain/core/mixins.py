from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from crm_domain.core.database import utcnow


class IdMixin:
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class TeamScopedMixin:
    """Rows owned by exactly one tenant; repositories filter on ``team_id``."""

    team_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class SoftDeleteMixin:
    """Marks rows deleted with a timestamp instead of removing them.

    Default repository reads exclude trashed rows. Children of a trashed
    parent are left untouched.
    """

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
        active_history=True,
    )

    @property
    def trashed(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        if self.deleted_at is None:
            self.deleted_at = utcnow()

    def restore(self) -> None:
        self.deleted_at = None


def is_soft_deletable(model: type) -> bool:
    return isinstance(model, type) and issubclass(model, SoftDeleteMixin)


def is_team_scoped(model: type) -> bool:
    return hasattr(model, "team_id")


def morph_pairs(model: type) -> tuple[tuple[str, str], ...]:
    """Polymorphic ``(type column, id column)`` pairs declared on a model."""

    return tuple(getattr(model, "__morph_pairs__", ()))
