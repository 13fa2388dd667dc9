from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, UOWTransaction

from crm_domain.core.config import get_settings
from crm_domain.core.database import Base
from crm_domain.core.mixins import is_soft_deletable, is_team_scoped, morph_pairs
from crm_domain.core.morph import morph_key_for
from crm_domain.metrics import observe_morph_resolution_failure
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import ReferentialIntegrityError, TenantScopeError, UnknownMorphTypeError
from crm_domain.platform.security.tenancy import row_in_scope


logger = logging.getLogger("crm_domain.registry")


class EntityKind(StrEnum):
    PEOPLE = "people"
    COMPANY = "company"
    OPPORTUNITY = "opportunity"
    ORDER = "order"
    INVOICE = "invoice"
    QUOTE = "quote"
    TASK = "task"
    KNOWLEDGE_ARTICLE = "knowledge_article"
    PRODUCT = "product"
    PURCHASE_ORDER = "purchase_order"
    EMAIL_PROGRAM = "email_program"
    TERRITORY = "territory"
    USER = "user"
    TEAM = "team"


ALIASES: dict[str, str] = {
    "Contact": "People",
    "Person": "People",
    "Deal": "Opportunity",
    "Organisation": "Company",
    "Label": "Tag",
    "OrderProduct": "OrderLineItem",
    "QuoteProduct": "QuoteLineItem",
    "InvoiceItem": "InvoiceLineItem",
}


def _normalise(name: str) -> str:
    return name.replace("_", "").replace("-", "").lower()


def _mapped_classes() -> list[type]:
    return [mapper.class_ for mapper in Base.registry.mappers]


def _models_by_name() -> dict[str, type]:
    names: dict[str, type] = {}
    for model in _mapped_classes():
        names[_normalise(model.__name__)] = model
        table_name = getattr(model, "__tablename__", None)
        if table_name:
            names[_normalise(table_name)] = model
        morph_key = getattr(model, "__morph_key__", None)
        if morph_key:
            names[_normalise(morph_key)] = model
    for alias, canonical in ALIASES.items():
        if _normalise(canonical) in names:
            names[_normalise(alias)] = names[_normalise(canonical)]
    return names


def morph_types() -> dict[str, type]:
    return {model.__morph_key__: model for model in _mapped_classes() if getattr(model, "__morph_key__", None)}


def resolve_model(name: str) -> type:
    """Mapped class for a class name, alias, table name or morph key (case-insensitive).

    Alias names return the very same class object as their canonical name.
    """

    model = _models_by_name().get(_normalise(str(name)))
    if model is None:
        observe_morph_resolution_failure(reason="unknown_model")
        raise UnknownMorphTypeError(name)
    return model


def model_for_morph_type(morph_type: EntityKind | str | None) -> type:
    key = morph_type.value if isinstance(morph_type, EntityKind) else morph_type
    model = morph_types().get(key) if isinstance(key, str) else None
    if model is None:
        observe_morph_resolution_failure(reason="unknown_type")
        logger.warning("morph.unknown_type", extra={"morph_type": str(morph_type), "operation": "resolve"})
        raise UnknownMorphTypeError(morph_type)
    return model


def resolve_reference(
    session: Session,
    morph_type: EntityKind | str,
    record_id: Any,
    *,
    ctx: TenantContext | None = None,
    with_trashed: bool = False,
) -> Any | None:
    """Load the target of a ``(type, id)`` pair.

    An unknown discriminator is a data error and raises. A target that is
    gone, trashed or owned by another tenant is reported as absent.
    """

    model = model_for_morph_type(morph_type)
    row = session.get(model, record_id)
    if row is None:
        logger.debug("morph.target_absent", extra={"morph_type": str(morph_type), "entity_id": record_id})
        return None
    if is_soft_deletable(model) and getattr(row, "deleted_at") is not None and not with_trashed:
        return None
    if ctx is not None and is_team_scoped(model) and not row_in_scope(model.__tablename__, row, ctx):
        return None
    return row


def _pair_changed(instance: object, type_attr: str, id_attr: str) -> bool:
    attrs = inspect(instance).attrs
    changed = attrs[type_attr].history.has_changes() or attrs[id_attr].history.has_changes()
    if is_team_scoped(type(instance)):
        changed = changed or attrs["team_id"].history.has_changes()
    return changed


def validate_morph_references(
    session: Session,
    instance: object,
    *,
    is_new: bool,
    require_target: bool = True,
) -> None:
    """Check each ``(type, id)`` pair on ``instance`` against its target row.

    A target owned by another tenant is always rejected. A missing target is
    rejected only when ``require_target`` is set.
    """

    for type_attr, id_attr in morph_pairs(type(instance)):
        if not is_new and not _pair_changed(instance, type_attr, id_attr):
            continue

        morph_type = getattr(instance, type_attr)
        record_id = getattr(instance, id_attr)
        model = model_for_morph_type(morph_type)
        target = session.get(model, record_id) if record_id is not None else None
        if target is None:
            if not require_target:
                continue
            observe_morph_resolution_failure(reason="missing_target")
            logger.warning(
                "morph.missing_target",
                extra={"entity": type(instance).__name__, "morph_type": morph_type, "entity_id": record_id},
            )
            raise ReferentialIntegrityError(
                f"{type(instance).__name__}.{type_attr}/{id_attr} points at missing {morph_type} '{record_id}'"
            )

        owner_team = getattr(instance, "team_id", None)
        target_team = getattr(target, "team_id", None)
        if owner_team is not None and target_team is not None and owner_team != target_team:
            observe_morph_resolution_failure(reason="cross_tenant")
            logger.warning(
                "morph.cross_tenant_target",
                extra={
                    "entity": type(instance).__name__,
                    "morph_type": morph_type,
                    "entity_id": record_id,
                    "team_id": owner_team,
                },
            )
            raise TenantScopeError(model.__tablename__, target_team)


@event.listens_for(Session, "before_flush")
def _validate_pending_morph_references(session: Session, flush_context: UOWTransaction, instances: Any) -> None:
    require_target = get_settings().enforce_morph_integrity

    for instance in list(session.new):
        validate_morph_references(session, instance, is_new=True, require_target=require_target)
    for instance in list(session.dirty):
        if session.is_modified(instance, include_collections=False):
            validate_morph_references(session, instance, is_new=False, require_target=require_target)


__all__ = [
    "ALIASES",
    "EntityKind",
    "model_for_morph_type",
    "morph_key_for",
    "morph_types",
    "resolve_model",
    "resolve_reference",
    "validate_morph_references",
]
