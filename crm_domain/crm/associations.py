from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm_domain.core.database import Base
from crm_domain.core.mixins import IdMixin, SoftDeleteMixin, TeamScopedMixin, TimestampMixin


class Address(IdMixin, TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "addresses"
    __morph_pairs__ = (("addressable_type", "addressable_id"),)

    addressable_type: Mapped[str] = mapped_column(String(64), nullable=False)
    addressable_id: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="billing", server_default="billing")
    line1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    line2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(128), nullable=True)
    state: Mapped[str | None] = mapped_column(String(128), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    country_code: Mapped[str | None] = mapped_column(String(2), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")

    __table_args__ = (Index("ix_addresses_addressable", "addressable_type", "addressable_id"),)


class Email(IdMixin, TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "emails"
    __morph_pairs__ = (("emailable_type", "emailable_id"),)

    emailable_type: Mapped[str] = mapped_column(String(64), nullable=False)
    emailable_id: Mapped[int] = mapped_column(Integer, nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="work", server_default="work")
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")

    __table_args__ = (
        UniqueConstraint("emailable_type", "emailable_id", "email", name="uq_emails_owner_email"),
        Index("ix_emails_emailable", "emailable_type", "emailable_id"),
    )


class NotableEntry(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Note attached to any registered entity."""

    __tablename__ = "notable_entries"
    __morph_pairs__ = (("notable_type", "notable_id"),)

    notable_type: Mapped[str] = mapped_column(String(64), nullable=False)
    notable_id: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    visibility: Mapped[str] = mapped_column(String(32), nullable=False, default="internal", server_default="internal")
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    creator_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (Index("ix_notable_entries_notable", "notable_type", "notable_id"),)


class Tag(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "tags"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str | None] = mapped_column(String(16), nullable=True)
    type: Mapped[str | None] = mapped_column(String(64), nullable=True)

    taggables: Mapped[list[Taggable]] = relationship(
        "Taggable",
        back_populates="tag",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (UniqueConstraint("team_id", "slug", name="uq_tags_team_slug"),)


Label = Tag


class Taggable(IdMixin, TimestampMixin, Base):
    __tablename__ = "taggables"
    __morph_pairs__ = (("taggable_type", "taggable_id"),)

    tag_id: Mapped[int] = mapped_column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False)
    taggable_type: Mapped[str] = mapped_column(String(64), nullable=False)
    taggable_id: Mapped[int] = mapped_column(Integer, nullable=False)

    tag: Mapped[Tag] = relationship("Tag", back_populates="taggables")

    __table_args__ = (
        UniqueConstraint("tag_id", "taggable_type", "taggable_id", name="uq_taggables_triple"),
        Index("ix_taggables_taggable", "taggable_type", "taggable_id"),
    )
