from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, ClassVar

from sqlalchemy import Integer, String, delete, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Mapped, Session, mapped_column

from crm_domain.core.database import Base


logger = logging.getLogger("crm_domain.reference")


class InMemoryModel:
    """Small reference table rebuilt wholesale from ``__rows__`` instead of migrated row by row."""

    __rows__: ClassVar[Sequence[dict[str, Any]]] = ()


class LeadSource(InMemoryModel, Base):
    __tablename__ = "lead_sources"
    __rows__ = (
        {"id": 1, "key": "website", "name": "Website", "sort_order": 1},
        {"id": 2, "key": "referral", "name": "Referral", "sort_order": 2},
        {"id": 3, "key": "partner", "name": "Partner", "sort_order": 3},
        {"id": 4, "key": "event", "name": "Event", "sort_order": 4},
        {"id": 5, "key": "cold_call", "name": "Cold Call", "sort_order": 5},
        {"id": 6, "key": "social", "name": "Social Media", "sort_order": 6},
        {"id": 7, "key": "other", "name": "Other", "sort_order": 7},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


def sync_reference_table(session: Session, model: type[InMemoryModel]) -> int:
    rows = [dict(row) for row in model.__rows__]
    try:
        session.execute(delete(model))
        if rows:
            session.execute(insert(model), rows)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("reference.sync_failed", extra={"entity": model.__name__})
        raise

    logger.info("reference.synced", extra={"entity": model.__name__, "operation": "sync", "count": len(rows)})
    return len(rows)
