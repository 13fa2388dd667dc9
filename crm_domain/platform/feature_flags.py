from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from sqlalchemy import JSON, Boolean, ColumnElement, Index, String, and_, literal, select
from sqlalchemy.exc import CompileError
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import Mapped, Session, mapped_column
from sqlalchemy.sql.functions import FunctionElement

from crm_domain.core.database import Base
from crm_domain.core.mixins import IdMixin, TimestampMixin


class json_array_contains(FunctionElement[bool]):
    """``<json array column> contains <value>`` rendered per dialect."""

    type = Boolean()
    name = "json_array_contains"
    inherit_cache = True

    def __init__(self, column: Any, value: Any) -> None:
        super().__init__(column, literal(str(value)), literal(json.dumps([value])))


@compiles(json_array_contains)
def _compile_json_array_contains(element: json_array_contains, compiler: Any, **kw: Any) -> str:
    raise CompileError(f"json_array_contains is not supported on dialect '{compiler.dialect.name}'")


@compiles(json_array_contains, "postgresql")
def _compile_json_array_contains_postgresql(element: json_array_contains, compiler: Any, **kw: Any) -> str:
    column, _, document = list(element.clauses)
    return f"CAST({compiler.process(column, **kw)} AS JSONB) @> CAST({compiler.process(document, **kw)} AS JSONB)"


@compiles(json_array_contains, "sqlite")
def _compile_json_array_contains_sqlite(element: json_array_contains, compiler: Any, **kw: Any) -> str:
    column, value, _ = list(element.clauses)
    return (
        f"EXISTS (SELECT 1 FROM json_each({compiler.process(column, **kw)}) "
        f"WHERE CAST(json_each.value AS TEXT) = {compiler.process(value, **kw)})"
    )


@compiles(json_array_contains, "mysql")
def _compile_json_array_contains_mysql(element: json_array_contains, compiler: Any, **kw: Any) -> str:
    column, _, document = list(element.clauses)
    return f"JSON_CONTAINS({compiler.process(column, **kw)}, {compiler.process(document, **kw)})"


class FeatureFlagSegment(IdMixin, TimestampMixin, Base):
    """Feature switched on for the tenants listed in ``values``.

    Tenancy here is a JSON-array membership test rather than a ``team_id``
    column.
    """

    __tablename__ = "feature_segments"

    feature: Mapped[str] = mapped_column(String(255), nullable=False)
    scope: Mapped[str] = mapped_column(String(64), nullable=False, default="team_id", server_default="team_id")
    values: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")

    __table_args__ = (Index("ix_feature_segments_feature_scope", "feature", "scope"),)

    @classmethod
    def applies_to_team(cls, team_id: int) -> ColumnElement[bool]:
        return and_(cls.scope == "team_id", json_array_contains(cls.values, team_id))


class FeatureSegmentRepository:
    model = FeatureFlagSegment

    def for_team(self, session: Session, team_id: int, *, active_only: bool = True) -> Sequence[FeatureFlagSegment]:
        stmt = select(FeatureFlagSegment).where(FeatureFlagSegment.applies_to_team(team_id))
        if active_only:
            stmt = stmt.where(FeatureFlagSegment.active.is_(True))
        return session.scalars(stmt.order_by(FeatureFlagSegment.id.asc())).all()

    def is_enabled(self, session: Session, feature: str, team_id: int) -> bool:
        stmt = (
            select(FeatureFlagSegment.id)
            .where(
                FeatureFlagSegment.feature == feature,
                FeatureFlagSegment.active.is_(True),
                FeatureFlagSegment.applies_to_team(team_id),
            )
            .limit(1)
        )
        return session.scalar(stmt) is not None
