from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm_domain.core.database import Base, utcnow
from crm_domain.core.mixins import IdMixin, SoftDeleteMixin, TeamScopedMixin, TimestampMixin


class Territory(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "territories"
    __morph_key__ = "territory"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="geographic", server_default="geographic")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("territories.id", ondelete="SET NULL"),
        nullable=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    assignment_rules: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    revenue_quota: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    unit_quota: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quota_period: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")

    parent: Mapped[Territory | None] = relationship("Territory", remote_side="Territory.id", back_populates="children")
    children: Mapped[list[Territory]] = relationship("Territory", back_populates="parent")
    records: Mapped[list[TerritoryRecord]] = relationship(
        "TerritoryRecord",
        back_populates="territory",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (UniqueConstraint("team_id", "code", name="uq_territories_team_code"),)


class TerritoryRecord(IdMixin, TimestampMixin, Base):
    """Assignment of any registered entity to a territory."""

    __tablename__ = "territory_records"
    __morph_pairs__ = (("record_type", "record_id"),)

    territory_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("territories.id", ondelete="CASCADE"),
        nullable=False,
    )
    record_type: Mapped[str] = mapped_column(String(64), nullable=False)
    record_id: Mapped[int] = mapped_column(Integer, nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    assignment_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    territory: Mapped[Territory] = relationship("Territory", back_populates="records")

    __table_args__ = (
        UniqueConstraint("territory_id", "record_type", "record_id", name="uq_territory_records_assignment"),
        Index("ix_territory_records_record", "record_type", "record_id"),
    )
