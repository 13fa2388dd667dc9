"""create admin templates, custom fields, feature segments and lead sources

Revision ID: 202610190007
Revises: 202610190006
Create Date: 2026-10-19 01:00:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610190007"
down_revision: str | None = "202610190006"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "notification_preferences",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("event", sa.String(length=128), nullable=False),
        sa.Column("channel", sa.String(length=32), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "event", "channel", name="uq_notification_preferences_user_event_channel"),
    )
    op.create_index(op.f("ix_notification_preferences_team_id"), "notification_preferences", ["team_id"], unique=False)

    op.create_table(
        "document_templates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("key", sa.String(length=128), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False, server_default="quote"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "key", name="uq_document_templates_team_key"),
    )
    op.create_index(op.f("ix_document_templates_team_id"), "document_templates", ["team_id"], unique=False)
    op.create_index(op.f("ix_document_templates_deleted_at"), "document_templates", ["deleted_at"], unique=False)

    op.create_table(
        "ocr_templates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("document_type", sa.String(length=64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_ocr_templates_team_id"), "ocr_templates", ["team_id"], unique=False)
    op.create_index(op.f("ix_ocr_templates_deleted_at"), "ocr_templates", ["deleted_at"], unique=False)

    op.create_table(
        "ocr_template_fields",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("ocr_template_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False, server_default="text"),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("validation_rules", sa.JSON(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["ocr_template_id"], ["ocr_templates.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("ocr_template_id", "name", name="uq_ocr_template_fields_template_name"),
    )
    op.create_index(op.f("ix_ocr_template_fields_ocr_template_id"), "ocr_template_fields", ["ocr_template_id"], unique=False)

    op.create_table(
        "custom_field_sections",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=128), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "entity_type", "code", name="uq_custom_field_sections_code"),
    )
    op.create_index(op.f("ix_custom_field_sections_team_id"), "custom_field_sections", ["team_id"], unique=False)

    op.create_table(
        "custom_fields",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("custom_field_section_id", sa.Integer(), nullable=True),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("code", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("validation_rules", sa.JSON(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["custom_field_section_id"], ["custom_field_sections.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "entity_type", "code", name="uq_custom_fields_code"),
    )
    op.create_index(op.f("ix_custom_fields_team_id"), "custom_fields", ["team_id"], unique=False)

    op.create_table(
        "custom_field_values",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("custom_field_id", sa.Integer(), nullable=False),
        sa.Column("string_value", sa.String(length=255), nullable=True),
        sa.Column("text_value", sa.Text(), nullable=True),
        sa.Column("integer_value", sa.Integer(), nullable=True),
        sa.Column("float_value", sa.Float(), nullable=True),
        sa.Column("boolean_value", sa.Boolean(), nullable=True),
        sa.Column("date_value", sa.Date(), nullable=True),
        sa.Column("datetime_value", sa.DateTime(timezone=True), nullable=True),
        sa.Column("json_value", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["custom_field_id"], ["custom_fields.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("entity_type", "entity_id", "custom_field_id", name="uq_custom_field_values_entity_field"),
    )
    op.create_index("ix_custom_field_values_entity", "custom_field_values", ["entity_type", "entity_id"], unique=False)

    op.create_table(
        "feature_segments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("feature", sa.String(length=255), nullable=False),
        sa.Column("scope", sa.String(length=64), nullable=False, server_default="team_id"),
        sa.Column("values", sa.JSON(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_feature_segments_feature_scope", "feature_segments", ["feature", "scope"], unique=False)

    op.create_table(
        "lead_sources",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("lead_sources")
    op.drop_index("ix_feature_segments_feature_scope", table_name="feature_segments")
    op.drop_table("feature_segments")
    op.drop_index("ix_custom_field_values_entity", table_name="custom_field_values")
    op.drop_table("custom_field_values")
    op.drop_index(op.f("ix_custom_fields_team_id"), table_name="custom_fields")
    op.drop_table("custom_fields")
    op.drop_index(op.f("ix_custom_field_sections_team_id"), table_name="custom_field_sections")
    op.drop_table("custom_field_sections")
    op.drop_index(op.f("ix_ocr_template_fields_ocr_template_id"), table_name="ocr_template_fields")
    op.drop_table("ocr_template_fields")
    op.drop_index(op.f("ix_ocr_templates_deleted_at"), table_name="ocr_templates")
    op.drop_index(op.f("ix_ocr_templates_team_id"), table_name="ocr_templates")
    op.drop_table("ocr_templates")
    op.drop_index(op.f("ix_document_templates_deleted_at"), table_name="document_templates")
    op.drop_index(op.f("ix_document_templates_team_id"), table_name="document_templates")
    op.drop_table("document_templates")
    op.drop_index(op.f("ix_notification_preferences_team_id"), table_name="notification_preferences")
    op.drop_table("notification_preferences")
