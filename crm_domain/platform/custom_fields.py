from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from crm_domain.core.database import Base
from crm_domain.core.mixins import IdMixin, TeamScopedMixin, TimestampMixin
from crm_domain.core.morph import morph_key_for
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import PersistenceError, TenantScopeError
from crm_domain.platform.security.repository import BaseRepository


VALUE_COLUMNS: dict[str, str] = {
    "text": "string_value",
    "link": "string_value",
    "email": "string_value",
    "phone": "string_value",
    "textarea": "text_value",
    "rich_editor": "text_value",
    "number": "integer_value",
    "currency": "float_value",
    "decimal": "float_value",
    "toggle": "boolean_value",
    "checkbox": "boolean_value",
    "date": "date_value",
    "datetime": "datetime_value",
    "select": "json_value",
    "multi_select": "json_value",
    "tags_input": "json_value",
}


def value_column_for(field_type: str) -> str:
    try:
        return VALUE_COLUMNS[field_type]
    except KeyError:
        raise PersistenceError(f"Unsupported custom field type '{field_type}'") from None


class CustomFieldGroup(IdMixin, TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "custom_field_sections"

    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(128), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    fields: Mapped[list[CustomField]] = relationship("CustomField", back_populates="section")

    __table_args__ = (UniqueConstraint("team_id", "entity_type", "code", name="uq_custom_field_sections_code"),)


class CustomField(IdMixin, TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "custom_fields"

    custom_field_section_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("custom_field_sections.id", ondelete="SET NULL"),
        nullable=True,
    )
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    code: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    validation_rules: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")

    section: Mapped[CustomFieldGroup | None] = relationship("CustomFieldGroup", back_populates="fields")

    __table_args__ = (UniqueConstraint("team_id", "entity_type", "code", name="uq_custom_fields_code"),)


class CustomFieldValue(IdMixin, TimestampMixin, Base):
    __tablename__ = "custom_field_values"
    __morph_pairs__ = (("entity_type", "entity_id"),)

    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    custom_field_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("custom_fields.id", ondelete="CASCADE"),
        nullable=False,
    )
    string_value: Mapped[str | None] = mapped_column(String(255), nullable=True)
    text_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    integer_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    float_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    boolean_value: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    date_value: Mapped[date | None] = mapped_column(Date, nullable=True)
    datetime_value: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    json_value: Mapped[Any | None] = mapped_column(JSON, nullable=True)

    custom_field: Mapped[CustomField] = relationship("CustomField")

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "custom_field_id", name="uq_custom_field_values_entity_field"),
        Index("ix_custom_field_values_entity", "entity_type", "entity_id"),
    )

    @property
    def value(self) -> Any:
        return getattr(self, value_column_for(self.custom_field.type))


class CustomFieldRepository(BaseRepository[CustomField]):
    model = CustomField
    resource = "custom_fields"

    def set_value(
        self,
        session: Session,
        ctx: TenantContext,
        field_id: int,
        owner: object,
        value: Any,
    ) -> CustomFieldValue:
        """Store ``value`` for ``owner`` in the column matching the field's type."""

        field = self.get(session, ctx, field_id)
        entity_type = morph_key_for(owner)
        if field.entity_type != entity_type:
            raise PersistenceError(f"Custom field '{field.code}' does not apply to '{entity_type}'")
        if getattr(owner, "team_id", field.team_id) != field.team_id:
            raise TenantScopeError(self.resource, getattr(owner, "team_id", None))

        entity_id = getattr(owner, "id")
        row = session.scalar(
            select(CustomFieldValue).where(
                CustomFieldValue.entity_type == entity_type,
                CustomFieldValue.entity_id == entity_id,
                CustomFieldValue.custom_field_id == field.id,
            )
        )
        if row is None:
            row = CustomFieldValue(entity_type=entity_type, entity_id=entity_id, custom_field_id=field.id)
            session.add(row)
        setattr(row, value_column_for(field.type), value)
        self.flush(session)
        return row

    def values_for(self, session: Session, ctx: TenantContext, owner: object) -> dict[str, Any]:
        stmt = (
            select(CustomFieldValue, CustomField)
            .join(CustomField, CustomField.id == CustomFieldValue.custom_field_id)
            .where(
                CustomFieldValue.entity_type == morph_key_for(owner),
                CustomFieldValue.entity_id == getattr(owner, "id"),
                CustomField.is_active.is_(True),
            )
        )
        stmt = self.apply_scope_query(stmt, ctx)
        return {field.code: row.value for row, field in session.execute(stmt).all()}
