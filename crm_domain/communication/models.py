from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm_domain.core.database import Base, utcnow
from crm_domain.core.mixins import IdMixin, SoftDeleteMixin, TeamScopedMixin, TimestampMixin


class EmailProgram(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "email_programs"
    __morph_key__ = "email_program"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="drip", server_default="drip")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft", server_default="draft")
    audience_filters: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    estimated_audience_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    scheduled_start_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    scheduled_end_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    respect_quiet_hours: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    total_recipients: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_delivered: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_opened: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_clicked: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_bounced: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_unsubscribed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    recipients: Mapped[list[EmailProgramRecipient]] = relationship(
        "EmailProgramRecipient",
        back_populates="email_program",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    bounces: Mapped[list[EmailProgramBounce]] = relationship(
        "EmailProgramBounce",
        back_populates="email_program",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_email_programs_team_status", "team_id", "status"),
        Index("ix_email_programs_team_type", "team_id", "type"),
    )


class EmailProgramRecipient(IdMixin, TimestampMixin, Base):
    __tablename__ = "email_program_recipients"
    __morph_pairs__ = (("recipient_type", "recipient_id"),)

    email_program_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("email_programs.id", ondelete="CASCADE"),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    recipient_type: Mapped[str] = mapped_column(String(64), nullable=False)
    recipient_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending", server_default="pending")
    scheduled_send_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    opened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    clicked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    bounced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    unsubscribed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    bounce_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    bounce_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    email_program: Mapped[EmailProgram] = relationship("EmailProgram", back_populates="recipients")

    __table_args__ = (
        Index("ix_email_program_recipients_program_status", "email_program_id", "status"),
        Index("ix_email_program_recipients_program_email", "email_program_id", "email"),
        Index("ix_email_program_recipients_recipient", "recipient_type", "recipient_id"),
    )


class EmailProgramBounce(IdMixin, TimestampMixin, Base):
    __tablename__ = "email_program_bounces"

    email_program_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("email_programs.id", ondelete="CASCADE"),
        nullable=False,
    )
    email_program_recipient_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("email_program_recipients.id", ondelete="SET NULL"),
        nullable=True,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    bounce_type: Mapped[str] = mapped_column(String(32), nullable=False)
    bounce_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    diagnostic_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_message: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    email_program: Mapped[EmailProgram] = relationship("EmailProgram", back_populates="bounces")
    recipient: Mapped[EmailProgramRecipient | None] = relationship("EmailProgramRecipient")

    __table_args__ = (Index("ix_email_program_bounces_program_type", "email_program_id", "bounce_type"),)


class EmailProgramUnsubscribe(IdMixin, TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "email_program_unsubscribes"

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email_program_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("email_programs.id", ondelete="SET NULL"),
        nullable=True,
    )
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)

    email_program: Mapped[EmailProgram | None] = relationship("EmailProgram")

    __table_args__ = (UniqueConstraint("team_id", "email", name="uq_email_program_unsubscribes_team_email"),)


class SecurityGroupBroadcastMessage(IdMixin, TimestampMixin, Base):
    __tablename__ = "security_group_broadcast_messages"

    group_id: Mapped[int] = mapped_column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="normal", server_default="normal")
    include_subgroups: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    require_acknowledgment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft", server_default="draft")
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivery_stats: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    group: Mapped[Group] = relationship("Group")
    sender: Mapped[User | None] = relationship("User")
    acknowledgments: Mapped[list[SecurityGroupMessageAcknowledgment]] = relationship(
        "SecurityGroupMessageAcknowledgment",
        back_populates="message",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class SecurityGroupMessageAcknowledgment(IdMixin, TimestampMixin, Base):
    __tablename__ = "security_group_message_acknowledgments"

    message_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("security_group_broadcast_messages.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    acknowledged_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    message: Mapped[SecurityGroupBroadcastMessage] = relationship(
        "SecurityGroupBroadcastMessage",
        back_populates="acknowledgments",
    )

    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_security_group_message_acknowledgments_pair"),
    )
