from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Session, UOWTransaction

from crm_domain.metrics import observe_read_only_rejection
from crm_domain.platform.security.errors import ReadOnlyModelError


logger = logging.getLogger("crm_domain.guards")


def is_read_only(model: type) -> bool:
    return bool(getattr(model, "__read_only__", False))


def is_append_only(model: type) -> bool:
    return bool(getattr(model, "__append_only__", False))


def _resource_name(model: type) -> str:
    return getattr(model, "__tablename__", model.__name__)


def _reject(model: type, operation: str) -> ReadOnlyModelError:
    resource = _resource_name(model)
    observe_read_only_rejection(resource=resource, operation=operation)
    logger.warning("entity.write_rejected", extra={"entity": model.__name__, "operation": operation})
    return ReadOnlyModelError(resource, operation)


@event.listens_for(Session, "before_flush")
def _reject_read_only_flush(session: Session, flush_context: UOWTransaction, instances: Any) -> None:
    for instance in session.new:
        if is_read_only(type(instance)):
            raise _reject(type(instance), "insert")

    for instance in session.dirty:
        model = type(instance)
        if not session.is_modified(instance, include_collections=False):
            continue
        if is_read_only(model) or is_append_only(model):
            raise _reject(model, "update")

    for instance in session.deleted:
        model = type(instance)
        if is_read_only(model) or is_append_only(model):
            raise _reject(model, "delete")


@event.listens_for(Session, "do_orm_execute")
def _reject_read_only_dml(orm_execute_state: ORMExecuteState) -> None:
    if orm_execute_state.is_select:
        return

    mapper = orm_execute_state.bind_mapper
    if mapper is None:
        return

    model = mapper.class_
    if orm_execute_state.is_insert and is_read_only(model):
        raise _reject(model, "insert")
    if orm_execute_state.is_update and (is_read_only(model) or is_append_only(model)):
        raise _reject(model, "update")
    if orm_execute_state.is_delete and (is_read_only(model) or is_append_only(model)):
        raise _reject(model, "delete")
