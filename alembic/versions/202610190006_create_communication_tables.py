"""create email program and group broadcast tables

Revision ID: 202610190006
Revises: 202610190005
Create Date: 2026-10-19 00:50:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610190006"
down_revision: str | None = "202610190005"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "email_programs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=32), nullable=False, server_default="drip"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column("audience_filters", sa.JSON(), nullable=True),
        sa.Column("estimated_audience_size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("scheduled_start_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scheduled_end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("respect_quiet_hours", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("total_recipients", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_sent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_delivered", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_opened", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_clicked", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_bounced", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_unsubscribed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_email_programs_team_id"), "email_programs", ["team_id"], unique=False)
    op.create_index(op.f("ix_email_programs_deleted_at"), "email_programs", ["deleted_at"], unique=False)
    op.create_index("ix_email_programs_team_status", "email_programs", ["team_id", "status"], unique=False)
    op.create_index("ix_email_programs_team_type", "email_programs", ["team_id", "type"], unique=False)

    op.create_table(
        "email_program_recipients",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email_program_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("recipient_type", sa.String(length=64), nullable=False),
        sa.Column("recipient_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("scheduled_send_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("opened_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("clicked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bounced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("unsubscribed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bounce_type", sa.String(length=32), nullable=True),
        sa.Column("bounce_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["email_program_id"], ["email_programs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_email_program_recipients_program_status",
        "email_program_recipients",
        ["email_program_id", "status"],
        unique=False,
    )
    op.create_index(
        "ix_email_program_recipients_program_email",
        "email_program_recipients",
        ["email_program_id", "email"],
        unique=False,
    )
    op.create_index(
        "ix_email_program_recipients_recipient",
        "email_program_recipients",
        ["recipient_type", "recipient_id"],
        unique=False,
    )

    op.create_table(
        "email_program_bounces",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email_program_id", sa.Integer(), nullable=False),
        sa.Column("email_program_recipient_id", sa.Integer(), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("bounce_type", sa.String(length=32), nullable=False),
        sa.Column("bounce_reason", sa.Text(), nullable=True),
        sa.Column("diagnostic_code", sa.Text(), nullable=True),
        sa.Column("raw_message", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["email_program_id"], ["email_programs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["email_program_recipient_id"],
            ["email_program_recipients.id"],
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_email_program_bounces_email"), "email_program_bounces", ["email"], unique=False)
    op.create_index(
        "ix_email_program_bounces_program_type",
        "email_program_bounces",
        ["email_program_id", "bounce_type"],
        unique=False,
    )

    op.create_table(
        "email_program_unsubscribes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("email_program_id", sa.Integer(), nullable=True),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["email_program_id"], ["email_programs.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "email", name="uq_email_program_unsubscribes_team_email"),
    )
    op.create_index(op.f("ix_email_program_unsubscribes_team_id"), "email_program_unsubscribes", ["team_id"], unique=False)
    op.create_index(op.f("ix_email_program_unsubscribes_email"), "email_program_unsubscribes", ["email"], unique=False)

    op.create_table(
        "security_group_broadcast_messages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=True),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="normal"),
        sa.Column("include_subgroups", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("require_acknowledgment", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivery_stats", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_security_group_broadcast_messages_group_id"),
        "security_group_broadcast_messages",
        ["group_id"],
        unique=False,
    )

    op.create_table(
        "security_group_message_acknowledgments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("message_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["message_id"], ["security_group_broadcast_messages.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("message_id", "user_id", name="uq_security_group_message_acknowledgments_pair"),
    )


def downgrade() -> None:
    op.drop_table("security_group_message_acknowledgments")
    op.drop_index(
        op.f("ix_security_group_broadcast_messages_group_id"),
        table_name="security_group_broadcast_messages",
    )
    op.drop_table("security_group_broadcast_messages")
    op.drop_index(op.f("ix_email_program_unsubscribes_email"), table_name="email_program_unsubscribes")
    op.drop_index(op.f("ix_email_program_unsubscribes_team_id"), table_name="email_program_unsubscribes")
    op.drop_table("email_program_unsubscribes")
    op.drop_index("ix_email_program_bounces_program_type", table_name="email_program_bounces")
    op.drop_index(op.f("ix_email_program_bounces_email"), table_name="email_program_bounces")
    op.drop_table("email_program_bounces")
    op.drop_index("ix_email_program_recipients_recipient", table_name="email_program_recipients")
    op.drop_index("ix_email_program_recipients_program_email", table_name="email_program_recipients")
    op.drop_index("ix_email_program_recipients_program_status", table_name="email_program_recipients")
    op.drop_table("email_program_recipients")
    op.drop_index("ix_email_programs_team_type", table_name="email_programs")
    op.drop_index("ix_email_programs_team_status", table_name="email_programs")
    op.drop_index(op.f("ix_email_programs_deleted_at"), table_name="email_programs")
    op.drop_index(op.f("ix_email_programs_team_id"), table_name="email_programs")
    op.drop_table("email_programs")
