from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from opentelemetry import trace
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crm_domain.business.territory.models import TerritoryRecord
from crm_domain.business.territory.repositories import TerritoryRecordRepository, TerritoryRepository
from crm_domain.core.database import utcnow
from crm_domain.core.mixins import is_team_scoped
from crm_domain.core.morph import morph_key_for
from crm_domain.models.registry import resolve_reference
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import RecordNotFoundError
from crm_domain.platform.security.repository import translate_integrity_error
from crm_domain.platform.security.tenancy import row_in_scope


logger = logging.getLogger("crm_domain.territory")
tracer = trace.get_tracer("crm_domain.territory")


@dataclass(slots=True)
class TerritoryService:
    territory_repository: TerritoryRepository = TerritoryRepository()
    record_repository: TerritoryRecordRepository = TerritoryRecordRepository()

    def assign(
        self,
        session: Session,
        ctx: TenantContext,
        territory_id: int,
        record: Any,
        *,
        is_primary: bool = False,
        reason: str | None = None,
    ) -> TerritoryRecord:
        """Assign ``record`` to a territory, or refresh an existing assignment.

        A primary assignment clears the record's other primary assignments.
        """

        with tracer.start_as_current_span("crm.territory.assign") as span:
            territory = self.territory_repository.get(session, ctx, territory_id)
            record_type = morph_key_for(record)
            if is_team_scoped(type(record)) and not row_in_scope(record_type, record, ctx):
                raise RecordNotFoundError(record_type, record.id)
            span.set_attribute("crm.territory_id", territory.id)
            span.set_attribute("crm.record_type", record_type)
            span.set_attribute("crm.record_id", record.id)

            try:
                if is_primary:
                    for other in self.record_repository.for_record(session, record_type, record.id):
                        if other.is_primary and other.territory_id != territory.id:
                            other.is_primary = False

                assignment = self.record_repository.find_assignment(session, territory.id, record_type, record.id)
                if assignment is None:
                    assignment = TerritoryRecord(
                        territory_id=territory.id,
                        record_type=record_type,
                        record_id=record.id,
                    )
                    session.add(assignment)
                assignment.is_primary = is_primary
                assignment.assigned_at = utcnow()
                assignment.assignment_reason = reason
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise translate_integrity_error(self.record_repository.resource, exc) from exc

            logger.info(
                "territory.assigned",
                extra={
                    "entity": "TerritoryRecord",
                    "entity_id": assignment.id,
                    "team_id": ctx.team_id,
                    "morph_type": record_type,
                    "operation": "assign",
                },
            )
            return assignment

    def unassign(self, session: Session, ctx: TenantContext, territory_id: int, record: Any) -> None:
        territory = self.territory_repository.get(session, ctx, territory_id)
        assignment = self.record_repository.find_assignment(session, territory.id, morph_key_for(record), record.id)
        if assignment is None:
            return
        session.delete(assignment)
        session.commit()

    def records_for(self, session: Session, ctx: TenantContext, territory_id: int) -> list[Any]:
        """Entities assigned to a territory. Absent targets are skipped."""

        territory = self.territory_repository.get(session, ctx, territory_id)
        records: list[Any] = []
        for assignment in self.record_repository.for_territory(session, territory.id):
            target = resolve_reference(session, assignment.record_type, assignment.record_id, ctx=ctx)
            if target is not None:
                records.append(target)
        return records
