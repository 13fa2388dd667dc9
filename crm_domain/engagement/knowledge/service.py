from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crm_domain.engagement.knowledge.models import KnowledgeArticle, KnowledgeArticleRelation, KnowledgeTag
from crm_domain.engagement.knowledge.repositories import (
    KnowledgeArticleRelationRepository,
    KnowledgeArticleRepository,
    KnowledgeTagRepository,
)
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import ReferentialIntegrityError, UniqueConstraintViolation
from crm_domain.platform.security.repository import translate_integrity_error


logger = logging.getLogger("crm_domain.knowledge")

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _SLUG_PATTERN.sub("-", value.strip().lower()).strip("-")


@dataclass(slots=True)
class KnowledgeService:
    article_repository: KnowledgeArticleRepository = KnowledgeArticleRepository()
    tag_repository: KnowledgeTagRepository = KnowledgeTagRepository()
    relation_repository: KnowledgeArticleRelationRepository = KnowledgeArticleRelationRepository()

    def relate(
        self,
        session: Session,
        ctx: TenantContext,
        article_id: int,
        related_id: int,
        relation_type: str = "related",
    ) -> KnowledgeArticleRelation:
        if article_id == related_id:
            raise ReferentialIntegrityError(f"Knowledge article {article_id} cannot be related to itself")

        article = self.article_repository.get(session, ctx, article_id)
        related = self.article_repository.get(session, ctx, related_id)
        if self.relation_repository.find_pair(session, article.id, related.id) is not None:
            raise UniqueConstraintViolation(
                self.relation_repository.resource,
                ["article_id", "related_article_id"],
            )

        relation = KnowledgeArticleRelation(
            team_id=article.team_id,
            article_id=article.id,
            related_article_id=related.id,
            relation_type=relation_type,
        )
        session.add(relation)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise translate_integrity_error(self.relation_repository.resource, exc) from exc
        return relation

    def related_to(self, session: Session, ctx: TenantContext, article_id: int) -> list[KnowledgeArticle]:
        article = self.article_repository.get(session, ctx, article_id)
        return [item for item in article.related_articles if item.deleted_at is None]

    def tag(
        self,
        session: Session,
        ctx: TenantContext,
        article_id: int,
        tag_names: Sequence[str],
    ) -> list[KnowledgeTag]:
        """Attach tags by name, creating any that do not exist yet in the tenant."""

        article = self.article_repository.get(session, ctx, article_id)
        wanted: dict[str, str] = {}
        for name in tag_names:
            slug = slugify(name)
            if slug and slug not in wanted:
                wanted[slug] = name.strip()

        existing = self.tag_repository.by_slugs(session, ctx, list(wanted))
        try:
            for slug, name in wanted.items():
                tag = existing.get(slug)
                if tag is None:
                    tag = KnowledgeTag(team_id=article.team_id, name=name, slug=slug)
                    session.add(tag)
                    logger.info(
                        "knowledge.tag_created",
                        extra={"entity": "KnowledgeTag", "team_id": ctx.team_id, "operation": "create"},
                    )
                elif tag.deleted_at is not None:
                    tag.restore()
                if tag not in article.tags:
                    article.tags.append(tag)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise translate_integrity_error(self.tag_repository.resource, exc) from exc
        return list(article.tags)
