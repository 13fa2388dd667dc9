from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crm_domain import audit
from crm_domain.core.config import get_settings
from crm_domain.core.mixins import is_soft_deletable, is_team_scoped
from crm_domain.logging import entity_fields
from crm_domain.metrics import observe_read_only_rejection, observe_soft_delete_operation
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import (
    PersistenceError,
    ReadOnlyModelError,
    RecordNotFoundError,
    ReferentialIntegrityError,
    UniqueConstraintViolation,
)
from crm_domain.platform.security.tenancy import (
    apply_tenant_filter,
    require_privileged,
    row_in_scope,
    validate_tenant_write,
)


ModelT = TypeVar("ModelT")

logger = logging.getLogger("crm_domain.repository")


def translate_integrity_error(resource: str, exc: IntegrityError) -> PersistenceError:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    lowered = message.lower()
    if "unique" in lowered or "duplicate key" in lowered:
        fields: list[str] = []
        if ":" in message:
            # sqlite: "UNIQUE constraint failed: tags.team_id, tags.slug"
            fields = [item.strip().split(".")[-1] for item in message.split(":", 1)[1].split(",")]
        return UniqueConstraintViolation(resource, [item for item in fields if item] or ["unknown"])
    if "foreign key" in lowered:
        return ReferentialIntegrityError(f"Referenced row missing for resource '{resource}': {message}")
    return PersistenceError(f"Integrity violation for resource '{resource}': {message}")


class BaseRepository(Generic[ModelT]):
    model: type[ModelT]
    resource = ""
    order_column = "id"

    def apply_scope_query(self, query: Select[Any], ctx: TenantContext) -> Select[Any]:
        return apply_tenant_filter(query, ctx)

    def base_query(
        self,
        ctx: TenantContext,
        *,
        with_trashed: bool = False,
        only_trashed: bool = False,
    ) -> Select[Any]:
        stmt = self.apply_scope_query(select(self.model), ctx)
        return self._apply_trashed_mode(stmt, with_trashed=with_trashed, only_trashed=only_trashed)

    def find(
        self,
        session: Session,
        ctx: TenantContext,
        record_id: Any,
        *,
        with_trashed: bool = False,
    ) -> ModelT | None:
        row = session.get(self.model, record_id)
        if row is None:
            return None
        if is_soft_deletable(self.model) and getattr(row, "deleted_at") is not None and not with_trashed:
            return None
        if is_team_scoped(self.model) and not row_in_scope(self.resource, row, ctx):
            return None
        return row

    def get(
        self,
        session: Session,
        ctx: TenantContext,
        record_id: Any,
        *,
        with_trashed: bool = False,
    ) -> ModelT:
        row = self.find(session, ctx, record_id, with_trashed=with_trashed)
        if row is None:
            raise RecordNotFoundError(self.resource, record_id)
        return row

    def list(
        self,
        session: Session,
        ctx: TenantContext,
        *,
        filters: dict[str, Any] | None = None,
        with_trashed: bool = False,
        only_trashed: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[ModelT]:
        stmt = self.base_query(ctx, with_trashed=with_trashed, only_trashed=only_trashed)
        stmt = self._apply_filters(stmt, filters)
        if limit is None:
            limit = get_settings().default_page_size
        stmt = stmt.order_by(getattr(self.model, self.order_column).asc()).offset(offset)
        if limit > 0:
            stmt = stmt.limit(limit)
        return session.scalars(stmt).all()

    def list_across_tenants(
        self,
        session: Session,
        ctx: TenantContext,
        *,
        filters: dict[str, Any] | None = None,
        with_trashed: bool = False,
    ) -> Sequence[ModelT]:
        require_privileged(self.resource, ctx)
        stmt = self._apply_trashed_mode(select(self.model), with_trashed=with_trashed, only_trashed=False)
        stmt = self._apply_filters(stmt, filters)
        return session.scalars(stmt.order_by(getattr(self.model, self.order_column).asc())).all()

    def create(self, session: Session, ctx: TenantContext, payload: dict[str, Any]) -> ModelT:
        if is_team_scoped(self.model):
            payload = validate_tenant_write(self.resource, payload, ctx)
        row = self.model(**payload)
        session.add(row)
        self.flush(session)
        logger.info("entity.created", extra=entity_fields(row, "create"))
        return row

    def update(
        self,
        session: Session,
        ctx: TenantContext,
        record_id: Any,
        changes: dict[str, Any],
    ) -> ModelT:
        row = self.get(session, ctx, record_id)
        if is_team_scoped(self.model) and "team_id" in changes:
            validate_tenant_write(self.resource, changes, ctx)
        for field_name, value in changes.items():
            if field_name in {"id", "team_id"}:
                continue
            if not hasattr(self.model, field_name):
                raise PersistenceError(f"Unknown attribute '{field_name}' for resource '{self.resource}'")
            setattr(row, field_name, value)
        self.flush(session)
        return row

    def delete(self, session: Session, ctx: TenantContext, record_id: Any) -> None:
        """Soft delete when the model supports it, otherwise remove the row."""

        row = self.get(session, ctx, record_id)
        if is_soft_deletable(self.model):
            getattr(row, "soft_delete")()
            self.flush(session)
            self._record_lifecycle(ctx, row, "soft_delete")
            return
        session.delete(row)
        self.flush(session)
        self._record_lifecycle(ctx, row, "delete")

    def restore(self, session: Session, ctx: TenantContext, record_id: Any) -> ModelT:
        if not is_soft_deletable(self.model):
            raise PersistenceError(f"Resource '{self.resource}' does not support restore")
        row = self.get(session, ctx, record_id, with_trashed=True)
        getattr(row, "restore")()
        self.flush(session)
        self._record_lifecycle(ctx, row, "restore")
        return row

    def force_delete(self, session: Session, ctx: TenantContext, record_id: Any) -> None:
        row = self.get(session, ctx, record_id, with_trashed=True)
        session.delete(row)
        self.flush(session)
        self._record_lifecycle(ctx, row, "force_delete")

    def flush(self, session: Session) -> None:
        try:
            session.flush()
        except IntegrityError as exc:
            session.rollback()
            raise translate_integrity_error(self.resource, exc) from exc

    def _apply_trashed_mode(self, stmt: Select[Any], *, with_trashed: bool, only_trashed: bool) -> Select[Any]:
        if not is_soft_deletable(self.model):
            return stmt
        deleted_at = getattr(self.model, "deleted_at")
        if only_trashed:
            return stmt.where(deleted_at.is_not(None))
        if with_trashed:
            return stmt
        return stmt.where(deleted_at.is_(None))

    def _apply_filters(self, stmt: Select[Any], filters: dict[str, Any] | None) -> Select[Any]:
        for field_name, value in (filters or {}).items():
            column = getattr(self.model, field_name, None)
            if column is None:
                raise PersistenceError(f"Unknown filter '{field_name}' for resource '{self.resource}'")
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        return stmt

    def _record_lifecycle(self, ctx: TenantContext, row: object, operation: str) -> None:
        observe_soft_delete_operation(resource=self.resource, operation=operation)
        logger.info("entity.%s", operation, extra=entity_fields(row, operation))
        audit.record(
            actor_user_id=ctx.user_id,
            entity_type=self.resource,
            entity_id=getattr(row, "id", None),
            action=operation,
            before=None,
            after={"deleted_at": getattr(row, "deleted_at", None)},
            team_id=ctx.team_id,
            correlation_id=ctx.correlation_id,
        )


class ReadOnlyRepository(BaseRepository[ModelT]):
    """Repository over a derived projection; every write is rejected up front."""

    def create(self, session: Session, ctx: TenantContext, payload: dict[str, Any]) -> ModelT:
        raise self._reject("insert")

    def update(self, session: Session, ctx: TenantContext, record_id: Any, changes: dict[str, Any]) -> ModelT:
        raise self._reject("update")

    def delete(self, session: Session, ctx: TenantContext, record_id: Any) -> None:
        raise self._reject("delete")

    def restore(self, session: Session, ctx: TenantContext, record_id: Any) -> ModelT:
        raise self._reject("update")

    def force_delete(self, session: Session, ctx: TenantContext, record_id: Any) -> None:
        raise self._reject("delete")

    def _reject(self, operation: str) -> ReadOnlyModelError:
        observe_read_only_rejection(resource=self.resource, operation=operation)
        return ReadOnlyModelError(self.resource, operation)
