from __future__ import annotations

import logging
from typing import Any

from pydantic import TypeAdapter

from crm_domain.business.revenue.models import Order
from crm_domain.core.morph import morph_key_for
from crm_domain.crm.models import People
from crm_domain.events import build_envelope, publish
from crm_domain.platform.observers import observe


logger = logging.getLogger("crm_domain.observers")

OBSERVED_MODELS: tuple[type, ...] = (People, Order)

_payload_adapter: TypeAdapter[Any] = TypeAdapter(Any)


def publish_entity_event(operation: str, model: type, snapshot: dict[str, Any]) -> None:
    event_type = f"crm.{morph_key_for(model)}.{operation}"
    publish(
        build_envelope(
            event_type,
            _payload_adapter.dump_python(snapshot, mode="json"),
            team_id=snapshot.get("team_id"),
        )
    )
    logger.info("entity.event_published", extra={"entity": model.__name__, "entity_id": snapshot.get("id"), "operation": operation})


def register_default_observers() -> None:
    for model in OBSERVED_MODELS:
        observe(model, publish_entity_event)
