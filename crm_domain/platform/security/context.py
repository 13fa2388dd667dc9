from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class TenantContext:
    """Explicit caller context passed into every repository and service call."""

    team_id: int | None
    user_id: int | None = None
    correlation_id: str | None = None
    is_super_admin: bool = False

    def for_team(self, team_id: int) -> TenantContext:
        return TenantContext(
            team_id=team_id,
            user_id=self.user_id,
            correlation_id=self.correlation_id,
            is_super_admin=self.is_super_admin,
        )
