from __future__ import annotations

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm_domain.core.database import Base
from crm_domain.core.mixins import IdMixin, SoftDeleteMixin, TeamScopedMixin, TimestampMixin


class NotificationPreference(IdMixin, TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "notification_preferences"

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    event: Mapped[str] = mapped_column(String(128), nullable=False)
    channel: Mapped[str] = mapped_column(String(32), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")

    __table_args__ = (
        UniqueConstraint("user_id", "event", "channel", name="uq_notification_preferences_user_event_channel"),
    )


class DocumentTemplate(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "document_templates"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    key: Mapped[str] = mapped_column(String(128), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="quote", server_default="quote")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")

    __table_args__ = (UniqueConstraint("team_id", "key", name="uq_document_templates_team_key"),)


class OCRTemplate(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "ocr_templates"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    document_type: Mapped[str] = mapped_column(String(64), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")

    fields: Mapped[list[OCRTemplateField]] = relationship(
        "OCRTemplateField",
        back_populates="template",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OCRTemplateField.sort_order",
    )


class OCRTemplateField(IdMixin, TimestampMixin, Base):
    __tablename__ = "ocr_template_fields"

    ocr_template_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("ocr_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="text", server_default="text")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    validation_rules: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    template: Mapped[OCRTemplate] = relationship("OCRTemplate", back_populates="fields")

    __table_args__ = (UniqueConstraint("ocr_template_id", "name", name="uq_ocr_template_fields_template_name"),)
