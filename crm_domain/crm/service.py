from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import TypeAdapter
from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crm_domain import audit
from crm_domain.business.billing.models import Invoice
from crm_domain.business.revenue.models import Order, Quote
from crm_domain.business.territory.models import TerritoryRecord
from crm_domain.core.morph import morph_key_for
from crm_domain.crm.associations import Address, Email, NotableEntry
from crm_domain.crm.models import Company, CompanyPerson, ContactMergeLog, Opportunity, People
from crm_domain.crm.repositories import (
    CompanyPersonRepository,
    CompanyRepository,
    ContactMergeLogRepository,
    PeopleRepository,
)
from crm_domain.crm.schemas import MERGEABLE_FIELDS, ContactMergeLogRead, FieldChange, MergeData
from crm_domain.metrics import observe_contact_merge
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import (
    InvalidStateTransitionError,
    PersistenceError,
    UniqueConstraintViolation,
)
from crm_domain.platform.security.repository import translate_integrity_error


logger = logging.getLogger("crm_domain.crm")
tracer = trace.get_tracer("crm_domain.crm")

_EMPTY: tuple[Any, ...] = (None, "", [], {})

_json_adapter: TypeAdapter[Any] = TypeAdapter(Any)


def _jsonable(value: Any) -> Any:
    return _json_adapter.dump_python(value, mode="json")


def _snapshot(instance: object) -> dict[str, Any]:
    mapper = inspect(type(instance))
    return _jsonable({attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs})


@dataclass(slots=True)
class _Repointed:
    """Rows moved, dropped or demoted while re-pointing a duplicate's relations."""

    relations: dict[str, list[int]] = field(default_factory=dict)
    dropped: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    demoted_primary_links: list[int] = field(default_factory=list)

    def drop(self, session: Session, relation: str, row: object) -> None:
        self.dropped.setdefault(relation, []).append(_snapshot(row))
        session.delete(row)


@dataclass(slots=True)
class ContactMergeService:
    people_repository: PeopleRepository = PeopleRepository()
    company_person_repository: CompanyPersonRepository = CompanyPersonRepository()
    merge_log_repository: ContactMergeLogRepository = ContactMergeLogRepository()

    def merge(
        self,
        session: Session,
        ctx: TenantContext,
        primary_id: int,
        duplicate_id: int,
        merged_by: int | None = None,
        field_overrides: dict[str, Any] | None = None,
    ) -> ContactMergeLogRead:
        """Absorb ``duplicate_id`` into ``primary_id`` and write one merge log.

        Everything happens in a single commit; any failure rolls the session
        back and re-raises.
        """

        started = time.perf_counter()
        with tracer.start_as_current_span("crm.contact.merge") as span:
            span.set_attribute("crm.team_id", ctx.team_id or 0)
            span.set_attribute("crm.primary_contact_id", primary_id)
            span.set_attribute("crm.duplicate_contact_id", duplicate_id)
            try:
                log = self._merge(session, ctx, primary_id, duplicate_id, merged_by, field_overrides or {})
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                self._fail(span, started, primary_id, duplicate_id, exc)
                raise translate_integrity_error(self.merge_log_repository.resource, exc) from exc
            except PersistenceError as exc:
                session.rollback()
                self._fail(span, started, primary_id, duplicate_id, exc)
                raise

            observe_contact_merge(status="success", duration=time.perf_counter() - started)
            span.set_attribute("crm.merge_log_id", log.id)

        audit.record(
            actor_user_id=log.merged_by,
            entity_type=self.merge_log_repository.resource,
            entity_id=log.id,
            action="merge",
            before=None,
            after={"primary_contact_id": primary_id, "duplicate_contact_id": duplicate_id},
            team_id=ctx.team_id,
            correlation_id=ctx.correlation_id,
        )
        logger.info(
            "contact.merged",
            extra={"entity": "People", "entity_id": primary_id, "team_id": ctx.team_id, "operation": "merge"},
        )
        return ContactMergeLogRead.model_validate(log)

    def history(self, session: Session, ctx: TenantContext, contact_id: int) -> list[ContactMergeLogRead]:
        return [
            ContactMergeLogRead.model_validate(row)
            for row in self.merge_log_repository.for_contact(session, ctx, contact_id)
        ]

    def _merge(
        self,
        session: Session,
        ctx: TenantContext,
        primary_id: int,
        duplicate_id: int,
        merged_by: int | None,
        field_overrides: dict[str, Any],
    ) -> ContactMergeLog:
        if primary_id == duplicate_id:
            raise InvalidStateTransitionError("A contact cannot be merged into itself")
        unknown = sorted(set(field_overrides) - set(MERGEABLE_FIELDS))
        if unknown:
            raise PersistenceError(f"Fields cannot be merged: {', '.join(unknown)}")

        primary = self.people_repository.get(session, ctx, primary_id)
        duplicate = self.people_repository.get(session, ctx, duplicate_id)
        duplicate_snapshot = _snapshot(duplicate)

        fields = self._merge_fields(primary, duplicate, field_overrides)
        repointed = self._repoint_relations(session, ctx, primary, duplicate)
        duplicate.soft_delete()

        merge_data = MergeData(
            fields=fields,
            relations={name: ids for name, ids in repointed.relations.items() if ids},
            dropped=repointed.dropped,
            demoted_primary_links=repointed.demoted_primary_links,
            duplicate_snapshot=duplicate_snapshot,
        )
        log = ContactMergeLog(
            team_id=primary.team_id,
            primary_contact_id=primary.id,
            duplicate_contact_id=duplicate.id,
            merged_by=merged_by if merged_by is not None else ctx.user_id,
            merge_data=merge_data.model_dump(mode="json"),
        )
        session.add(log)
        session.flush()
        return log

    def _merge_fields(
        self,
        primary: People,
        duplicate: People,
        field_overrides: dict[str, Any],
    ) -> dict[str, FieldChange]:
        changes: dict[str, FieldChange] = {}
        for name in MERGEABLE_FIELDS:
            current = getattr(primary, name)
            if name in field_overrides:
                value, source = field_overrides[name], "override"
            elif current in _EMPTY and getattr(duplicate, name) not in _EMPTY:
                value, source = getattr(duplicate, name), "duplicate"
            else:
                continue
            if name == "reports_to_id" and value in (primary.id, duplicate.id):
                continue
            if value == current:
                continue
            changes[name] = FieldChange(
                previous=_jsonable(current),
                value=_jsonable(value),
                source=source,
            )
            setattr(primary, name, value)
        return changes

    def _repoint_relations(
        self,
        session: Session,
        ctx: TenantContext,
        primary: People,
        duplicate: People,
    ) -> _Repointed:
        morph_key = morph_key_for(People)
        result = _Repointed()

        primary_emails = {row.email.lower() for row in primary.emails}
        moved: list[int] = []
        for row in session.scalars(
            select(Email).where(Email.emailable_type == morph_key, Email.emailable_id == duplicate.id)
        ):
            if row.email.lower() in primary_emails:
                result.drop(session, "emails", row)
                continue
            row.emailable_id = primary.id
            moved.append(row.id)
        result.relations["emails"] = moved

        result.relations["addresses"] = self._repoint_morph(
            session, Address, Address.addressable_type, Address.addressable_id, morph_key, primary, duplicate
        )
        result.relations["notes"] = self._repoint_morph(
            session, NotableEntry, NotableEntry.notable_type, NotableEntry.notable_id, morph_key, primary, duplicate
        )

        primary_links = self.company_person_repository.for_person(session, primary.id)
        linked_companies = {link.company_id for link in primary_links}
        has_primary_company = any(link.is_primary for link in primary_links)
        moved = []
        for link in self.company_person_repository.for_person(session, duplicate.id):
            if link.company_id in linked_companies:
                result.drop(session, "companies", link)
                continue
            if link.is_primary:
                if has_primary_company:
                    # One primary company per person.
                    link.is_primary = False
                    result.demoted_primary_links.append(link.id)
                has_primary_company = True
            link.person = primary
            moved.append(link.company_id)
        result.relations["companies"] = moved

        result.relations["groups"] = self._move_collection(
            result, "groups", "group_id", primary.groups, duplicate.groups, duplicate.id
        )
        result.relations["roles"] = self._move_collection(
            result, "roles", "contact_role_id", primary.roles, duplicate.roles, duplicate.id
        )

        assigned = {
            row.territory_id
            for row in session.scalars(
                select(TerritoryRecord).where(
                    TerritoryRecord.record_type == morph_key,
                    TerritoryRecord.record_id == primary.id,
                )
            )
        }
        moved = []
        for row in session.scalars(
            select(TerritoryRecord).where(
                TerritoryRecord.record_type == morph_key,
                TerritoryRecord.record_id == duplicate.id,
            )
        ):
            if row.territory_id in assigned:
                result.drop(session, "territories", row)
                continue
            row.record_id = primary.id
            moved.append(row.territory_id)
        result.relations["territories"] = moved

        for name, model in (
            ("opportunities", Opportunity),
            ("orders", Order),
            ("invoices", Invoice),
            ("quotes", Quote),
        ):
            rows = session.scalars(
                select(model).where(model.contact_id == duplicate.id, model.team_id == ctx.team_id)
            ).all()
            for row in rows:
                row.contact_id = primary.id
            result.relations[name] = [row.id for row in rows]

        return result

    @staticmethod
    def _repoint_morph(
        session: Session,
        model: type,
        type_column: Any,
        id_column: Any,
        morph_key: str,
        primary: People,
        duplicate: People,
    ) -> list[int]:
        rows = session.scalars(select(model).where(type_column == morph_key, id_column == duplicate.id)).all()
        for row in rows:
            setattr(row, id_column.key, primary.id)
        return [row.id for row in rows]

    @staticmethod
    def _move_collection(
        result: _Repointed,
        relation: str,
        key: str,
        target: list[Any],
        source: list[Any],
        duplicate_id: int,
    ) -> list[int]:
        """Move membership rows to the primary; memberships it already holds are dropped."""

        moved: list[int] = []
        for item in list(source):
            if item in target:
                result.dropped.setdefault(relation, []).append({key: item.id, "people_id": duplicate_id})
            else:
                target.append(item)
                moved.append(item.id)
            source.remove(item)
        return moved

    @staticmethod
    def _fail(span: Any, started: float, primary_id: int, duplicate_id: int, exc: Exception) -> None:
        observe_contact_merge(status="failed", duration=time.perf_counter() - started)
        span.record_exception(exc)
        span.set_status(Status(StatusCode.ERROR, str(exc)))
        logger.warning(
            "contact.merge_failed",
            extra={"entity": "People", "entity_id": primary_id, "operation": "merge", "error": str(exc)},
        )


@dataclass(slots=True)
class CompanyPeopleService:
    company_repository: CompanyRepository = CompanyRepository()
    people_repository: PeopleRepository = PeopleRepository()
    company_person_repository: CompanyPersonRepository = CompanyPersonRepository()

    def attach_person(
        self,
        session: Session,
        ctx: TenantContext,
        company_id: int,
        people_id: int,
        role: str | None = None,
        is_primary: bool = False,
    ) -> CompanyPerson:
        company = self.company_repository.get(session, ctx, company_id)
        person = self.people_repository.get(session, ctx, people_id)

        if self.company_person_repository.find_pair(session, company.id, person.id) is not None:
            raise UniqueConstraintViolation(self.company_person_repository.resource, ["company_id", "people_id"])

        try:
            if is_primary:
                self._clear_primary(session, person.id)
            link = CompanyPerson(company=company, person=person, role=role, is_primary=is_primary)
            session.add(link)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise translate_integrity_error(self.company_person_repository.resource, exc) from exc

        logger.info(
            "company.person_attached",
            extra={"entity": "CompanyPerson", "entity_id": link.id, "team_id": ctx.team_id, "operation": "attach"},
        )
        return link

    def detach_person(self, session: Session, ctx: TenantContext, company_id: int, people_id: int) -> None:
        company = self.company_repository.get(session, ctx, company_id)
        person = self.people_repository.get(session, ctx, people_id)
        link = self.company_person_repository.find_pair(session, company.id, person.id)
        if link is None:
            return
        session.delete(link)
        session.commit()

    def set_primary(self, session: Session, ctx: TenantContext, company_id: int, people_id: int) -> CompanyPerson:
        company = self.company_repository.get(session, ctx, company_id)
        person = self.people_repository.get(session, ctx, people_id)
        link = self.company_person_repository.find_pair(session, company.id, person.id)
        if link is None:
            raise PersistenceError(f"People '{people_id}' is not attached to company '{company_id}'")
        self._clear_primary(session, person.id)
        link.is_primary = True
        session.commit()
        return link

    def companies_for(
        self,
        session: Session,
        ctx: TenantContext,
        people_id: int,
    ) -> Sequence[tuple[Company, CompanyPerson]]:
        person = self.people_repository.get(session, ctx, people_id)
        stmt = (
            select(Company, CompanyPerson)
            .join(CompanyPerson, CompanyPerson.company_id == Company.id)
            .where(CompanyPerson.people_id == person.id, Company.deleted_at.is_(None))
            .order_by(CompanyPerson.is_primary.desc(), Company.name.asc())
        )
        stmt = self.company_repository.apply_scope_query(stmt, ctx)
        return [(company, link) for company, link in session.execute(stmt).all()]

    def _clear_primary(self, session: Session, people_id: int) -> None:
        for link in self.company_person_repository.for_person(session, people_id):
            if link.is_primary:
                link.is_primary = False
