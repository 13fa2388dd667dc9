from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from crm_domain.crm.associations import Address, Email, NotableEntry, Tag
from crm_domain.crm.models import (
    Company,
    CompanyPerson,
    ContactMergeLog,
    ContactPersona,
    ContactRole,
    Customer,
    Group,
    Opportunity,
    People,
    PortalUser,
)
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.repository import BaseRepository, ReadOnlyRepository


class PeopleRepository(BaseRepository[People]):
    model = People
    resource = "people"


class CompanyRepository(BaseRepository[Company]):
    model = Company
    resource = "companies"


class CompanyPersonRepository(BaseRepository[CompanyPerson]):
    model = CompanyPerson
    resource = "company_people"

    def find_pair(self, session: Session, company_id: int, people_id: int) -> CompanyPerson | None:
        return session.scalar(
            select(CompanyPerson).where(
                CompanyPerson.company_id == company_id,
                CompanyPerson.people_id == people_id,
            )
        )

    def for_person(self, session: Session, people_id: int) -> Sequence[CompanyPerson]:
        return session.scalars(
            select(CompanyPerson).where(CompanyPerson.people_id == people_id).order_by(CompanyPerson.id.asc())
        ).all()


class OpportunityRepository(BaseRepository[Opportunity]):
    model = Opportunity
    resource = "opportunities"


class PortalUserRepository(BaseRepository[PortalUser]):
    model = PortalUser
    resource = "portal_users"


class ContactPersonaRepository(BaseRepository[ContactPersona]):
    model = ContactPersona
    resource = "contact_personas"


class ContactRoleRepository(BaseRepository[ContactRole]):
    model = ContactRole
    resource = "contact_roles"


class GroupRepository(BaseRepository[Group]):
    model = Group
    resource = "groups"


class TagRepository(BaseRepository[Tag]):
    model = Tag
    resource = "tags"


class AddressRepository(BaseRepository[Address]):
    model = Address
    resource = "addresses"


class EmailRepository(BaseRepository[Email]):
    model = Email
    resource = "emails"


class NoteRepository(BaseRepository[NotableEntry]):
    model = NotableEntry
    resource = "notable_entries"


class CustomerRepository(ReadOnlyRepository[Customer]):
    model = Customer
    resource = "customers_view"
    order_column = "uid"


class ContactMergeLogRepository(ReadOnlyRepository[ContactMergeLog]):
    """Merge history. Rows are appended and never changed."""

    model = ContactMergeLog
    resource = "contact_merge_logs"

    def create(self, session: Session, ctx: TenantContext, payload: dict[str, Any]) -> ContactMergeLog:
        return BaseRepository.create(self, session, ctx, payload)

    def for_contact(self, session: Session, ctx: TenantContext, contact_id: int) -> Sequence[ContactMergeLog]:
        stmt = self.base_query(ctx).where(
            (ContactMergeLog.primary_contact_id == contact_id) | (ContactMergeLog.duplicate_contact_id == contact_id)
        )
        return session.scalars(stmt.order_by(ContactMergeLog.id.asc())).all()
