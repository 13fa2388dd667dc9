from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm_domain.core.database import Base
from crm_domain.core.mixins import IdMixin, SoftDeleteMixin, TeamScopedMixin, TimestampMixin


knowledge_article_tag = Table(
    "knowledge_article_tag",
    Base.metadata,
    Column("article_id", Integer, ForeignKey("knowledge_articles.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("knowledge_tags.id", ondelete="CASCADE"), primary_key=True),
)


class KnowledgeArticle(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "knowledge_articles"
    __morph_key__ = "knowledge_article"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft", server_default="draft")
    visibility: Mapped[str] = mapped_column(String(32), nullable=False, default="internal", server_default="internal")
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_keywords: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    helpful_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    not_helpful_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    author_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    tags: Mapped[list[KnowledgeTag]] = relationship(
        "KnowledgeTag",
        secondary=knowledge_article_tag,
        back_populates="articles",
    )
    relations: Mapped[list[KnowledgeArticleRelation]] = relationship(
        "KnowledgeArticleRelation",
        foreign_keys="KnowledgeArticleRelation.article_id",
        back_populates="article",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    related_articles: Mapped[list[KnowledgeArticle]] = relationship(
        "KnowledgeArticle",
        secondary="knowledge_article_relations",
        primaryjoin="KnowledgeArticle.id == KnowledgeArticleRelation.article_id",
        secondaryjoin="KnowledgeArticle.id == KnowledgeArticleRelation.related_article_id",
        viewonly=True,
    )

    __table_args__ = (UniqueConstraint("team_id", "slug", name="uq_knowledge_articles_team_slug"),)


class KnowledgeTag(IdMixin, TeamScopedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "knowledge_tags"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    articles: Mapped[list[KnowledgeArticle]] = relationship(
        "KnowledgeArticle",
        secondary=knowledge_article_tag,
        back_populates="tags",
    )

    __table_args__ = (UniqueConstraint("team_id", "slug", name="uq_knowledge_tags_team_slug"),)


class KnowledgeArticleRelation(IdMixin, TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "knowledge_article_relations"

    article_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("knowledge_articles.id", ondelete="CASCADE"),
        nullable=False,
    )
    related_article_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("knowledge_articles.id", ondelete="CASCADE"),
        nullable=False,
    )
    relation_type: Mapped[str] = mapped_column(String(32), nullable=False, default="related", server_default="related")

    article: Mapped[KnowledgeArticle] = relationship(
        "KnowledgeArticle",
        foreign_keys=[article_id],
        back_populates="relations",
    )
    related_article: Mapped[KnowledgeArticle] = relationship("KnowledgeArticle", foreign_keys=[related_article_id])

    __table_args__ = (
        UniqueConstraint("article_id", "related_article_id", name="uq_knowledge_article_relations_pair"),
        CheckConstraint("article_id <> related_article_id", name="ck_knowledge_article_relations_not_self"),
    )
