"""Post-commit entity observers.

Callbacks are registered per mapped class and invoked once the enclosing
transaction commits. Work that is rolled back never reaches a callback.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, UOWTransaction

from crm_domain.core.mixins import is_soft_deletable


ObserverCallback = Callable[[str, type, dict[str, Any]], None]

_PENDING_KEY = "crm_domain.observer_pending"

logger = logging.getLogger("crm_domain.observers")

_observers: dict[type, list[ObserverCallback]] = defaultdict(list)


def observe(model: type, callback: ObserverCallback) -> None:
    if callback not in _observers[model]:
        _observers[model].append(callback)


def unobserve(model: type, callback: ObserverCallback) -> None:
    callbacks = _observers.get(model, [])
    if callback in callbacks:
        callbacks.remove(callback)


def observers_for(model: type) -> list[ObserverCallback]:
    return list(_observers.get(model, []))


def _snapshot(instance: object) -> dict[str, Any]:
    mapper = inspect(type(instance))
    return {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}


def _operation_for_dirty(instance: object) -> str:
    if is_soft_deletable(type(instance)):
        history = inspect(instance).attrs.deleted_at.history
        if history.added and history.added[0] is not None:
            return "deleted"
        if history.deleted and history.deleted[0] is not None and history.added and history.added[0] is None:
            return "restored"
    return "updated"


@event.listens_for(Session, "before_flush")
def _collect_observed_deletes(session: Session, flush_context: UOWTransaction, instances: Any) -> None:
    # Deleted rows can no longer be loaded once the flush has run.
    pending: list[tuple[str, type, dict[str, Any]]] = session.info.setdefault(_PENDING_KEY, [])
    for instance in session.deleted:
        if type(instance) in _observers:
            pending.append(("deleted", type(instance), _snapshot(instance)))


@event.listens_for(Session, "after_flush")
def _collect_observed_changes(session: Session, flush_context: UOWTransaction) -> None:
    pending: list[tuple[str, type, dict[str, Any]]] = session.info.setdefault(_PENDING_KEY, [])

    for instance in session.new:
        if type(instance) in _observers:
            pending.append(("created", type(instance), _snapshot(instance)))

    for instance in session.dirty:
        if type(instance) in _observers and session.is_modified(instance, include_collections=False):
            pending.append((_operation_for_dirty(instance), type(instance), _snapshot(instance)))


@event.listens_for(Session, "after_commit")
def _dispatch_observed_changes(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, [])
    for operation, model, snapshot in pending:
        for callback in observers_for(model):
            logger.debug("observer.dispatch", extra={"entity": model.__name__, "operation": operation})
            callback(operation, model, snapshot)


@event.listens_for(Session, "after_rollback")
def _discard_observed_changes(session: Session) -> None:
    session.info.pop(_PENDING_KEY, None)
