from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    DDL,
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm_domain.core.config import get_settings
from crm_domain.core.database import Base, utcnow
from crm_domain.core.mixins import IdMixin, SoftDeleteMixin, TeamScopedMixin, TimestampMixin
from crm_domain.core.morph import morph_many


team_user = Table(
    "team_user",
    Base.metadata,
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role", String(64), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

contact_role_people = Table(
    "contact_role_people",
    Base.metadata,
    Column("contact_role_id", Integer, ForeignKey("contact_roles.id", ondelete="CASCADE"), primary_key=True),
    Column("people_id", Integer, ForeignKey("people.id", ondelete="CASCADE"), primary_key=True),
)

group_people = Table(
    "group_people",
    Base.metadata,
    Column("group_id", Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column("people_id", Integer, ForeignKey("people.id", ondelete="CASCADE"), primary_key=True),
)


class User(IdMixin, TimestampMixin, Base):
    __tablename__ = "users"
    __morph_key__ = "user"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    # Preference pointer only; membership lives in team_user.
    current_team_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    teams: Mapped[list[Team]] = relationship("Team", secondary=team_user, back_populates="members")


class Team(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "teams"
    __morph_key__ = "team"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    personal_team: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    owner_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    owner: Mapped[User | None] = relationship("User", foreign_keys=[owner_id])
    members: Mapped[list[User]] = relationship("User", secondary=team_user, back_populates="teams")


class ContactPersona(IdMixin, TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "contact_personas"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    key: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (UniqueConstraint("team_id", "key", name="uq_contact_personas_team_key"),)


class People(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    """An individual tracked by the CRM. ``Contact`` and ``Person`` name the same class."""

    __tablename__ = "people"
    __morph_key__ = "people"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    primary_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    alternate_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_mobile: Mapped[str | None] = mapped_column(String(64), nullable=True)
    phone_office: Mapped[str | None] = mapped_column(String(64), nullable=True)
    phone_home: Mapped[str | None] = mapped_column(String(64), nullable=True)
    phone_fax: Mapped[str | None] = mapped_column(String(64), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str | None] = mapped_column(String(255), nullable=True)
    persona_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("contact_personas.id", ondelete="SET NULL"),
        nullable=True,
    )
    reports_to_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("people.id", ondelete="SET NULL"),
        nullable=True,
    )
    birthdate: Mapped[date | None] = mapped_column(Date, nullable=True)
    lead_source: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_portal_user: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    social_links: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    segments: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    creation_source: Mapped[str] = mapped_column(String(32), nullable=False, default="web", server_default="web")
    creator_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    persona: Mapped[ContactPersona | None] = relationship("ContactPersona")
    reports_to: Mapped[People | None] = relationship("People", remote_side="People.id")
    company_links: Mapped[list[CompanyPerson]] = relationship(
        "CompanyPerson",
        back_populates="person",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    companies: Mapped[list[Company]] = relationship(
        "Company",
        secondary="company_people",
        viewonly=True,
    )
    roles: Mapped[list[ContactRole]] = relationship(
        "ContactRole",
        secondary=contact_role_people,
        back_populates="people",
    )
    groups: Mapped[list[Group]] = relationship("Group", secondary=group_people, back_populates="people")
    portal_user: Mapped[PortalUser | None] = relationship("PortalUser", back_populates="person", uselist=False)
    opportunities: Mapped[list[Opportunity]] = relationship("Opportunity", back_populates="contact")

    addresses: Mapped[list[Address]] = morph_many("Address", "addressable", "people", "People")
    emails: Mapped[list[Email]] = morph_many("Email", "emailable", "people", "People")
    notes: Mapped[list[NotableEntry]] = morph_many("NotableEntry", "notable", "people", "People")

    __table_args__ = (Index("ix_people_team_name", "team_id", "name"),)


Contact = People
Person = People


class Company(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "companies"
    __morph_key__ = "company"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_owner_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    parent_company_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
    )
    account_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    industry: Mapped[str | None] = mapped_column(String(128), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    primary_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    revenue: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    employee_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, default="USD", server_default="USD")
    social_links: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    creation_source: Mapped[str] = mapped_column(String(32), nullable=False, default="web", server_default="web")
    creator_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    account_owner: Mapped[User | None] = relationship("User", foreign_keys=[account_owner_id])
    parent_company: Mapped[Company | None] = relationship("Company", remote_side="Company.id")
    person_links: Mapped[list[CompanyPerson]] = relationship(
        "CompanyPerson",
        back_populates="company",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    people: Mapped[list[People]] = relationship("People", secondary="company_people", viewonly=True)
    opportunities: Mapped[list[Opportunity]] = relationship("Opportunity", back_populates="company")

    addresses: Mapped[list[Address]] = morph_many("Address", "addressable", "company", "Company")
    emails: Mapped[list[Email]] = morph_many("Email", "emailable", "company", "Company")
    notes: Mapped[list[NotableEntry]] = morph_many("NotableEntry", "notable", "company", "Company")

    __table_args__ = (Index("ix_companies_team_name", "team_id", "name"),)


Organisation = Company


class CompanyPerson(IdMixin, TimestampMixin, Base):
    __tablename__ = "company_people"

    company_id: Mapped[int] = mapped_column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    people_id: Mapped[int] = mapped_column(Integer, ForeignKey("people.id", ondelete="CASCADE"), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    role: Mapped[str | None] = mapped_column(String(128), nullable=True)

    company: Mapped[Company] = relationship("Company", back_populates="person_links")
    person: Mapped[People] = relationship("People", back_populates="company_links")

    __table_args__ = (
        UniqueConstraint("company_id", "people_id", name="uq_company_people_pair"),
        Index("ix_company_people_people_id", "people_id"),
    )


class PortalUser(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "portal_users"

    people_id: Mapped[int] = mapped_column(Integer, ForeignKey("people.id", ondelete="CASCADE"), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")

    person: Mapped[People] = relationship("People", back_populates="portal_user")

    __table_args__ = (UniqueConstraint("team_id", "email", name="uq_portal_users_team_email"),)


class ContactRole(IdMixin, TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "contact_roles"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)

    people: Mapped[list[People]] = relationship("People", secondary=contact_role_people, back_populates="roles")

    __table_args__ = (UniqueConstraint("team_id", "slug", name="uq_contact_roles_team_slug"),)


class Group(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Security group. Groups nest through ``parent_id``."""

    __tablename__ = "groups"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("groups.id", ondelete="SET NULL"), nullable=True)

    parent: Mapped[Group | None] = relationship("Group", remote_side="Group.id", back_populates="children")
    children: Mapped[list[Group]] = relationship("Group", back_populates="parent")
    people: Mapped[list[People]] = relationship("People", secondary=group_people, back_populates="groups")


class Opportunity(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "opportunities"
    __morph_key__ = "opportunity"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
    )
    contact_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("people.id", ondelete="SET NULL"), nullable=True)
    stage: Mapped[str] = mapped_column(String(64), nullable=False, default="prospecting", server_default="prospecting")
    amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    probability: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expected_close_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    creator_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    company: Mapped[Company | None] = relationship("Company", back_populates="opportunities")
    contact: Mapped[People | None] = relationship("People", back_populates="opportunities")
    notes: Mapped[list[NotableEntry]] = morph_many("NotableEntry", "notable", "opportunity", "Opportunity")

    __table_args__ = (Index("ix_opportunities_team_stage", "team_id", "stage"),)


Deal = Opportunity


class ContactMergeLog(Base):
    """One row per merge of a duplicate contact into a surviving one. Rows are never changed."""

    __tablename__ = "contact_merge_logs"
    __append_only__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    team_id: Mapped[int] = mapped_column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    primary_contact_id: Mapped[int] = mapped_column(Integer, ForeignKey("people.id"), nullable=False)
    duplicate_contact_id: Mapped[int] = mapped_column(Integer, ForeignKey("people.id"), nullable=False)
    merged_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    merge_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    primary_contact: Mapped[People] = relationship("People", foreign_keys=[primary_contact_id])
    duplicate_contact: Mapped[People] = relationship("People", foreign_keys=[duplicate_contact_id])
    merged_by_user: Mapped[User | None] = relationship("User", foreign_keys=[merged_by])

    __table_args__ = (
        Index("ix_contact_merge_logs_primary", "primary_contact_id"),
        Index("ix_contact_merge_logs_duplicate", "duplicate_contact_id"),
    )


# customers_view is not part of Base.metadata; create_all must not emit CREATE TABLE for it.
view_metadata = MetaData()

customers_view = Table(
    "customers_view",
    view_metadata,
    Column("uid", String(64), primary_key=True),
    Column("entity_id", Integer, nullable=False),
    Column("team_id", Integer, nullable=False),
    Column("type", String(16), nullable=False),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=True),
    Column("phone", String(64), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
)


class Customer(Base):
    """Read-only union of companies and people.

    ``uid`` is ``company-<id>`` or ``person-<id>``; it is a string and does
    not sort like the numeric ids behind it.
    """

    __table__ = customers_view
    __read_only__ = True


CREATE_CUSTOMERS_VIEW = """
CREATE VIEW customers_view AS
SELECT
    'company-' || CAST(companies.id AS TEXT) AS uid,
    companies.id AS entity_id,
    companies.team_id AS team_id,
    'company' AS type,
    companies.name AS name,
    companies.primary_email AS email,
    companies.phone AS phone,
    companies.created_at AS created_at
FROM companies
WHERE companies.deleted_at IS NULL
UNION ALL
SELECT
    'person-' || CAST(people.id AS TEXT) AS uid,
    people.id AS entity_id,
    people.team_id AS team_id,
    'person' AS type,
    people.name AS name,
    people.primary_email AS email,
    COALESCE(people.phone_mobile, people.phone_office, people.phone_home, people.phone_fax) AS phone,
    people.created_at AS created_at
FROM people
WHERE people.deleted_at IS NULL
"""

DROP_CUSTOMERS_VIEW = "DROP VIEW IF EXISTS customers_view"


def manages_customers_view(ddl: Any, target: Any, bind: Any, **kw: Any) -> bool:
    return get_settings().manage_customers_view


event.listen(Base.metadata, "after_create", DDL(CREATE_CUSTOMERS_VIEW).execute_if(callable_=manages_customers_view))
event.listen(Base.metadata, "before_drop", DDL(DROP_CUSTOMERS_VIEW).execute_if(callable_=manages_customers_view))
