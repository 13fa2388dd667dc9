from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import false
from sqlalchemy.sql import Select

from crm_domain import audit
from crm_domain.metrics import observe_tenant_scope_denied_read, observe_tenant_scope_denied_write
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import AuthorizationError, TenantScopeError


logger = logging.getLogger("crm_domain.tenancy")


def apply_tenant_filter(query: Select[Any], ctx: TenantContext) -> Select[Any]:
    """Restrict every team-scoped entity in ``query`` to the caller's tenant.

    A context without a team matches nothing rather than everything.
    """

    for description in query.column_descriptions:
        model = description.get("entity")
        if model is None or not hasattr(model, "team_id"):
            continue
        if ctx.team_id is None:
            query = query.where(false())
        else:
            query = query.where(getattr(model, "team_id") == ctx.team_id)

    return query


def require_privileged(resource: str, ctx: TenantContext) -> None:
    if not ctx.is_super_admin:
        raise AuthorizationError(f"Cross-tenant access to '{resource}' requires a privileged context")


def validate_tenant_write(resource: str, payload: dict[str, Any], ctx: TenantContext) -> dict[str, Any]:
    """Pin ``team_id`` on a write payload to the caller's tenant.

    Returns a copy with ``team_id`` filled in when absent.
    """

    if ctx.team_id is None:
        raise AuthorizationError(f"Writes to '{resource}' require a tenant context")

    requested = payload.get("team_id")
    if requested is not None and requested != ctx.team_id:
        _emit_tenant_denied(resource=resource, scope_value=requested, ctx=ctx, is_read=False)
        raise TenantScopeError(resource, requested)

    return {**payload, "team_id": ctx.team_id}


def row_in_scope(resource: str, row: object, ctx: TenantContext) -> bool:
    """Whether a loaded row may be returned to ``ctx``; misses are audited."""

    team_id = getattr(row, "team_id", None)
    if team_id is None or team_id == ctx.team_id:
        return True

    _emit_tenant_denied(resource=resource, scope_value=team_id, ctx=ctx, is_read=True)
    return False


def _emit_tenant_denied(*, resource: str, scope_value: object, ctx: TenantContext, is_read: bool) -> None:
    if is_read:
        observe_tenant_scope_denied_read(resource=resource)
    else:
        observe_tenant_scope_denied_write(resource=resource)

    logger.warning(
        "tenant.scope_denied",
        extra={"entity": resource, "team_id": ctx.team_id, "operation": "read" if is_read else "write"},
    )
    audit.record(
        actor_user_id=ctx.user_id,
        entity_type="security.tenancy",
        entity_id="scope",
        action="tenant.denied",
        before=None,
        after={
            "resource": resource,
            "operation": "read" if is_read else "write",
            "requested_team_id": scope_value,
            "team_id": ctx.team_id,
        },
        team_id=ctx.team_id,
        correlation_id=ctx.correlation_id,
    )
