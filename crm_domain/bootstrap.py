from __future__ import annotations

import logging
from dataclasses import dataclass

from opentelemetry.sdk.trace import TracerProvider

from crm_domain.core.config import Settings, get_settings
from crm_domain.core.events import event_bus
from crm_domain.logging import configure_logging
from crm_domain.otel import setup_otel


logger = logging.getLogger("crm_domain.lifecycle")


@dataclass(slots=True)
class Runtime:
    settings: Settings
    tracer_provider: TracerProvider | None
    metrics_enabled: bool


def bootstrap(settings: Settings | None = None) -> Runtime:
    """Configure logging and tracing for a process that uses the data layer.

    Safe to call more than once; logging and the tracer provider are only
    installed the first time.
    """

    settings = settings or get_settings()
    configure_logging()
    provider = setup_otel(settings.app_name, settings.otel_enabled)

    logger.info(
        "system.started",
        extra={"service": settings.app_name, "environment": settings.app_env, "status": "started"},
    )
    event_bus.publish("system.started", {"service": settings.app_name, "environment": settings.app_env})
    return Runtime(settings=settings, tracer_provider=provider, metrics_enabled=settings.metrics_enabled)
