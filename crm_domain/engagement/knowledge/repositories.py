from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from crm_domain.engagement.knowledge.models import KnowledgeArticle, KnowledgeArticleRelation, KnowledgeTag
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.repository import BaseRepository


class KnowledgeArticleRepository(BaseRepository[KnowledgeArticle]):
    model = KnowledgeArticle
    resource = "knowledge_articles"


class KnowledgeTagRepository(BaseRepository[KnowledgeTag]):
    model = KnowledgeTag
    resource = "knowledge_tags"

    def by_slugs(self, session: Session, ctx: TenantContext, slugs: Sequence[str]) -> dict[str, KnowledgeTag]:
        if not slugs:
            return {}
        stmt = self.base_query(ctx, with_trashed=True).where(KnowledgeTag.slug.in_(list(slugs)))
        return {tag.slug: tag for tag in session.scalars(stmt)}


class KnowledgeArticleRelationRepository(BaseRepository[KnowledgeArticleRelation]):
    model = KnowledgeArticleRelation
    resource = "knowledge_article_relations"

    def find_pair(self, session: Session, article_id: int, related_id: int) -> KnowledgeArticleRelation | None:
        return session.scalar(
            select(KnowledgeArticleRelation).where(
                KnowledgeArticleRelation.article_id == article_id,
                KnowledgeArticleRelation.related_article_id == related_id,
            )
        )
