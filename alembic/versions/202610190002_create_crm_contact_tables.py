"""create crm contact tables

Revision ID: 202610190002
Revises: 202610190001
Create Date: 2026-10-19 00:10:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610190002"
down_revision: str | None = "202610190001"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "contact_personas",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("key", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "key", name="uq_contact_personas_team_key"),
    )
    op.create_index(op.f("ix_contact_personas_team_id"), "contact_personas", ["team_id"], unique=False)

    op.create_table(
        "people",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("primary_email", sa.String(length=255), nullable=True),
        sa.Column("alternate_email", sa.String(length=255), nullable=True),
        sa.Column("phone_mobile", sa.String(length=64), nullable=True),
        sa.Column("phone_office", sa.String(length=64), nullable=True),
        sa.Column("phone_home", sa.String(length=64), nullable=True),
        sa.Column("phone_fax", sa.String(length=64), nullable=True),
        sa.Column("job_title", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=255), nullable=True),
        sa.Column("persona_id", sa.Integer(), nullable=True),
        sa.Column("reports_to_id", sa.Integer(), nullable=True),
        sa.Column("birthdate", sa.Date(), nullable=True),
        sa.Column("lead_source", sa.String(length=64), nullable=True),
        sa.Column("is_portal_user", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("social_links", sa.JSON(), nullable=True),
        sa.Column("segments", sa.JSON(), nullable=True),
        sa.Column("creation_source", sa.String(length=32), nullable=False, server_default="web"),
        sa.Column("creator_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["persona_id"], ["contact_personas.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["reports_to_id"], ["people.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["creator_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_people_team_id"), "people", ["team_id"], unique=False)
    op.create_index(op.f("ix_people_deleted_at"), "people", ["deleted_at"], unique=False)
    op.create_index("ix_people_team_name", "people", ["team_id", "name"], unique=False)

    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("account_owner_id", sa.Integer(), nullable=True),
        sa.Column("parent_company_id", sa.Integer(), nullable=True),
        sa.Column("account_type", sa.String(length=64), nullable=True),
        sa.Column("industry", sa.String(length=128), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("primary_email", sa.String(length=255), nullable=True),
        sa.Column("website", sa.String(length=255), nullable=True),
        sa.Column("revenue", sa.Numeric(18, 2), nullable=True),
        sa.Column("employee_count", sa.Integer(), nullable=True),
        sa.Column("currency_code", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("social_links", sa.JSON(), nullable=True),
        sa.Column("creation_source", sa.String(length=32), nullable=False, server_default="web"),
        sa.Column("creator_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["account_owner_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["parent_company_id"], ["companies.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["creator_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_companies_team_id"), "companies", ["team_id"], unique=False)
    op.create_index(op.f("ix_companies_deleted_at"), "companies", ["deleted_at"], unique=False)
    op.create_index("ix_companies_team_name", "companies", ["team_id", "name"], unique=False)

    op.create_table(
        "company_people",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("people_id", sa.Integer(), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("role", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["people_id"], ["people.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "people_id", name="uq_company_people_pair"),
    )
    op.create_index("ix_company_people_people_id", "company_people", ["people_id"], unique=False)

    op.create_table(
        "portal_users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("people_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["people_id"], ["people.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "email", name="uq_portal_users_team_email"),
    )
    op.create_index(op.f("ix_portal_users_team_id"), "portal_users", ["team_id"], unique=False)
    op.create_index(op.f("ix_portal_users_deleted_at"), "portal_users", ["deleted_at"], unique=False)

    op.create_table(
        "contact_roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "slug", name="uq_contact_roles_team_slug"),
    )
    op.create_index(op.f("ix_contact_roles_team_id"), "contact_roles", ["team_id"], unique=False)

    op.create_table(
        "contact_role_people",
        sa.Column("contact_role_id", sa.Integer(), nullable=False),
        sa.Column("people_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["contact_role_id"], ["contact_roles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["people_id"], ["people.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("contact_role_id", "people_id"),
    )

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_id"], ["groups.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_groups_team_id"), "groups", ["team_id"], unique=False)
    op.create_index(op.f("ix_groups_deleted_at"), "groups", ["deleted_at"], unique=False)

    op.create_table(
        "group_people",
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("people_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["people_id"], ["people.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("group_id", "people_id"),
    )

    op.create_table(
        "opportunities",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("contact_id", sa.Integer(), nullable=True),
        sa.Column("stage", sa.String(length=64), nullable=False, server_default="prospecting"),
        sa.Column("amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("probability", sa.Integer(), nullable=True),
        sa.Column("expected_close_date", sa.Date(), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("creator_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["contact_id"], ["people.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["creator_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_opportunities_team_id"), "opportunities", ["team_id"], unique=False)
    op.create_index(op.f("ix_opportunities_deleted_at"), "opportunities", ["deleted_at"], unique=False)
    op.create_index("ix_opportunities_team_stage", "opportunities", ["team_id", "stage"], unique=False)

    op.create_table(
        "contact_merge_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("primary_contact_id", sa.Integer(), nullable=False),
        sa.Column("duplicate_contact_id", sa.Integer(), nullable=False),
        sa.Column("merged_by", sa.Integer(), nullable=True),
        sa.Column("merge_data", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["primary_contact_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["duplicate_contact_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["merged_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_contact_merge_logs_team_id"), "contact_merge_logs", ["team_id"], unique=False)
    op.create_index("ix_contact_merge_logs_primary", "contact_merge_logs", ["primary_contact_id"], unique=False)
    op.create_index("ix_contact_merge_logs_duplicate", "contact_merge_logs", ["duplicate_contact_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_contact_merge_logs_duplicate", table_name="contact_merge_logs")
    op.drop_index("ix_contact_merge_logs_primary", table_name="contact_merge_logs")
    op.drop_index(op.f("ix_contact_merge_logs_team_id"), table_name="contact_merge_logs")
    op.drop_table("contact_merge_logs")
    op.drop_index("ix_opportunities_team_stage", table_name="opportunities")
    op.drop_index(op.f("ix_opportunities_deleted_at"), table_name="opportunities")
    op.drop_index(op.f("ix_opportunities_team_id"), table_name="opportunities")
    op.drop_table("opportunities")
    op.drop_table("group_people")
    op.drop_index(op.f("ix_groups_deleted_at"), table_name="groups")
    op.drop_index(op.f("ix_groups_team_id"), table_name="groups")
    op.drop_table("groups")
    op.drop_table("contact_role_people")
    op.drop_index(op.f("ix_contact_roles_team_id"), table_name="contact_roles")
    op.drop_table("contact_roles")
    op.drop_index(op.f("ix_portal_users_deleted_at"), table_name="portal_users")
    op.drop_index(op.f("ix_portal_users_team_id"), table_name="portal_users")
    op.drop_table("portal_users")
    op.drop_index("ix_company_people_people_id", table_name="company_people")
    op.drop_table("company_people")
    op.drop_index("ix_companies_team_name", table_name="companies")
    op.drop_index(op.f("ix_companies_deleted_at"), table_name="companies")
    op.drop_index(op.f("ix_companies_team_id"), table_name="companies")
    op.drop_table("companies")
    op.drop_index("ix_people_team_name", table_name="people")
    op.drop_index(op.f("ix_people_deleted_at"), table_name="people")
    op.drop_index(op.f("ix_people_team_id"), table_name="people")
    op.drop_table("people")
    op.drop_index(op.f("ix_contact_personas_team_id"), table_name="contact_personas")
    op.drop_table("contact_personas")
