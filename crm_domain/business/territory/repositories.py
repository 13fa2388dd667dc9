from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from crm_domain.business.territory.models import Territory, TerritoryRecord
from crm_domain.platform.security.repository import BaseRepository


class TerritoryRepository(BaseRepository[Territory]):
    model = Territory
    resource = "territories"


class TerritoryRecordRepository(BaseRepository[TerritoryRecord]):
    model = TerritoryRecord
    resource = "territory_records"

    def find_assignment(
        self,
        session: Session,
        territory_id: int,
        record_type: str,
        record_id: int,
    ) -> TerritoryRecord | None:
        return session.scalar(
            select(TerritoryRecord).where(
                TerritoryRecord.territory_id == territory_id,
                TerritoryRecord.record_type == record_type,
                TerritoryRecord.record_id == record_id,
            )
        )

    def for_record(self, session: Session, record_type: str, record_id: int) -> Sequence[TerritoryRecord]:
        return session.scalars(
            select(TerritoryRecord)
            .where(TerritoryRecord.record_type == record_type, TerritoryRecord.record_id == record_id)
            .order_by(TerritoryRecord.id.asc())
        ).all()

    def for_territory(self, session: Session, territory_id: int) -> Sequence[TerritoryRecord]:
        return session.scalars(
            select(TerritoryRecord)
            .where(TerritoryRecord.territory_id == territory_id)
            .order_by(TerritoryRecord.id.asc())
        ).all()
