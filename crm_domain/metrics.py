from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from crm_domain.core.config import get_settings


tenant_scope_denied_reads_count = Counter(
    "tenant_scope_denied_reads_count",
    "Total reads resolved as not found because the row belongs to another tenant",
    ["resource"],
)

tenant_scope_denied_writes_count = Counter(
    "tenant_scope_denied_writes_count",
    "Total writes rejected because the payload names another tenant",
    ["resource"],
)

morph_resolution_failures_count = Counter(
    "morph_resolution_failures_count",
    "Total polymorphic reference failures by reason",
    ["reason"],
)

read_only_write_rejections_count = Counter(
    "read_only_write_rejections_count",
    "Total writes rejected against read-only models",
    ["resource", "operation"],
)

soft_delete_operations_count = Counter(
    "soft_delete_operations_count",
    "Total soft delete lifecycle operations",
    ["resource", "operation"],
)

contact_merges_total = Counter(
    "contact_merges_total",
    "Total contact merges by status",
    ["status"],
)

contact_merge_duration_seconds = Histogram(
    "contact_merge_duration_seconds",
    "Contact merge duration in seconds",
)


def observe_tenant_scope_denied_read(resource: str) -> None:
    tenant_scope_denied_reads_count.labels(resource=resource).inc()


def observe_tenant_scope_denied_write(resource: str) -> None:
    tenant_scope_denied_writes_count.labels(resource=resource).inc()


def observe_morph_resolution_failure(reason: str) -> None:
    morph_resolution_failures_count.labels(reason=reason).inc()


def observe_read_only_rejection(resource: str, operation: str) -> None:
    read_only_write_rejections_count.labels(resource=resource, operation=operation).inc()


def observe_soft_delete_operation(resource: str, operation: str) -> None:
    soft_delete_operations_count.labels(resource=resource, operation=operation).inc()


def observe_contact_merge(status: str, duration: float) -> None:
    contact_merges_total.labels(status=status).inc()
    contact_merge_duration_seconds.observe(duration)


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST


def scrape_metrics() -> tuple[bytes, str] | None:
    """Payload and content type for a scrape, or ``None`` while metrics are disabled."""

    if not get_settings().metrics_enabled:
        return None
    return generate_metrics_payload(), metrics_content_type()
