"""create polymorphic association tables

Revision ID: 202610190003
Revises: 202610190002
Create Date: 2026-10-19 00:20:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610190003"
down_revision: str | None = "202610190002"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "addresses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("addressable_type", sa.String(length=64), nullable=False),
        sa.Column("addressable_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False, server_default="billing"),
        sa.Column("line1", sa.String(length=255), nullable=True),
        sa.Column("line2", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=128), nullable=True),
        sa.Column("state", sa.String(length=128), nullable=True),
        sa.Column("postal_code", sa.String(length=32), nullable=True),
        sa.Column("country_code", sa.String(length=2), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_addresses_team_id"), "addresses", ["team_id"], unique=False)
    op.create_index("ix_addresses_addressable", "addresses", ["addressable_type", "addressable_id"], unique=False)

    op.create_table(
        "emails",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("emailable_type", sa.String(length=64), nullable=False),
        sa.Column("emailable_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False, server_default="work"),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("emailable_type", "emailable_id", "email", name="uq_emails_owner_email"),
    )
    op.create_index(op.f("ix_emails_team_id"), "emails", ["team_id"], unique=False)
    op.create_index("ix_emails_emailable", "emails", ["emailable_type", "emailable_id"], unique=False)

    op.create_table(
        "notable_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("notable_type", sa.String(length=64), nullable=False),
        sa.Column("notable_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("visibility", sa.String(length=32), nullable=False, server_default="internal"),
        sa.Column("is_pinned", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("creator_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["creator_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notable_entries_team_id"), "notable_entries", ["team_id"], unique=False)
    op.create_index(op.f("ix_notable_entries_deleted_at"), "notable_entries", ["deleted_at"], unique=False)
    op.create_index("ix_notable_entries_notable", "notable_entries", ["notable_type", "notable_id"], unique=False)

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("color", sa.String(length=16), nullable=True),
        sa.Column("type", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "slug", name="uq_tags_team_slug"),
    )
    op.create_index(op.f("ix_tags_team_id"), "tags", ["team_id"], unique=False)
    op.create_index(op.f("ix_tags_deleted_at"), "tags", ["deleted_at"], unique=False)

    op.create_table(
        "taggables",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tag_id", sa.Integer(), nullable=False),
        sa.Column("taggable_type", sa.String(length=64), nullable=False),
        sa.Column("taggable_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["tag_id"], ["tags.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tag_id", "taggable_type", "taggable_id", name="uq_taggables_triple"),
    )
    op.create_index("ix_taggables_taggable", "taggables", ["taggable_type", "taggable_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_taggables_taggable", table_name="taggables")
    op.drop_table("taggables")
    op.drop_index(op.f("ix_tags_deleted_at"), table_name="tags")
    op.drop_index(op.f("ix_tags_team_id"), table_name="tags")
    op.drop_table("tags")
    op.drop_index("ix_notable_entries_notable", table_name="notable_entries")
    op.drop_index(op.f("ix_notable_entries_deleted_at"), table_name="notable_entries")
    op.drop_index(op.f("ix_notable_entries_team_id"), table_name="notable_entries")
    op.drop_table("notable_entries")
    op.drop_index("ix_emails_emailable", table_name="emails")
    op.drop_index(op.f("ix_emails_team_id"), table_name="emails")
    op.drop_table("emails")
    op.drop_index("ix_addresses_addressable", table_name="addresses")
    op.drop_index(op.f("ix_addresses_team_id"), table_name="addresses")
    op.drop_table("addresses")
