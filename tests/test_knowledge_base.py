from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_domain.core.database import Base
from crm_domain.engagement.knowledge.service import KnowledgeService, slugify
from crm_domain.models import KnowledgeArticle, KnowledgeArticleRelation, KnowledgeTag, Team
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import RecordNotFoundError, ReferentialIntegrityError, UniqueConstraintViolation


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def ctx(db_session: Session) -> TenantContext:
    team = Team(name="Acme", slug="acme")
    db_session.add(team)
    db_session.commit()
    return TenantContext(team_id=team.id)


def _article(db_session: Session, team_id: int, title: str) -> KnowledgeArticle:
    article = KnowledgeArticle(team_id=team_id, title=title, slug=slugify(title))
    db_session.add(article)
    db_session.commit()
    return article


def test_relate_articles(db_session: Session, ctx: TenantContext) -> None:
    setup = _article(db_session, ctx.team_id, "Setting up SSO")
    faq = _article(db_session, ctx.team_id, "SSO FAQ")

    relation = KnowledgeService().relate(db_session, ctx, setup.id, faq.id)

    assert relation.relation_type == "related"
    assert relation.team_id == ctx.team_id
    assert [item.title for item in KnowledgeService().related_to(db_session, ctx, setup.id)] == ["SSO FAQ"]


def test_self_relation_is_rejected(db_session: Session, ctx: TenantContext) -> None:
    setup = _article(db_session, ctx.team_id, "Setting up SSO")

    with pytest.raises(ReferentialIntegrityError):
        KnowledgeService().relate(db_session, ctx, setup.id, setup.id)

    db_session.add(
        KnowledgeArticleRelation(team_id=ctx.team_id, article_id=setup.id, related_article_id=setup.id)
    )
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


def test_duplicate_relation_is_rejected(db_session: Session, ctx: TenantContext) -> None:
    setup = _article(db_session, ctx.team_id, "Setting up SSO")
    faq = _article(db_session, ctx.team_id, "SSO FAQ")
    service = KnowledgeService()
    service.relate(db_session, ctx, setup.id, faq.id)

    with pytest.raises(UniqueConstraintViolation):
        service.relate(db_session, ctx, setup.id, faq.id, relation_type="see_also")

    assert len(db_session.scalars(select(KnowledgeArticleRelation)).all()) == 1


def test_relate_requires_articles_in_tenant(db_session: Session, ctx: TenantContext) -> None:
    setup = _article(db_session, ctx.team_id, "Setting up SSO")
    other = Team(name="Globex", slug="globex")
    db_session.add(other)
    db_session.commit()
    foreign = _article(db_session, other.id, "Globex secrets")

    with pytest.raises(RecordNotFoundError):
        KnowledgeService().relate(db_session, ctx, setup.id, foreign.id)


def test_tag_creates_missing_tags_and_reuses_existing(db_session: Session, ctx: TenantContext) -> None:
    article = _article(db_session, ctx.team_id, "Setting up SSO")
    db_session.add(KnowledgeTag(team_id=ctx.team_id, name="Security", slug="security"))
    db_session.commit()
    service = KnowledgeService()

    tags = service.tag(db_session, ctx, article.id, ["Security", "Single Sign-On", "single sign-on"])

    assert sorted(tag.slug for tag in tags) == ["security", "single-sign-on"]
    assert len(db_session.scalars(select(KnowledgeTag)).all()) == 2

    service.tag(db_session, ctx, article.id, ["security"])
    assert len(db_session.get(KnowledgeArticle, article.id).tags) == 2


def test_tag_restores_trashed_tag(db_session: Session, ctx: TenantContext) -> None:
    article = _article(db_session, ctx.team_id, "Setting up SSO")
    old = KnowledgeTag(team_id=ctx.team_id, name="Legacy", slug="legacy")
    db_session.add(old)
    db_session.commit()
    old.soft_delete()
    db_session.commit()

    KnowledgeService().tag(db_session, ctx, article.id, ["Legacy"])

    assert db_session.get(KnowledgeTag, old.id).deleted_at is None
