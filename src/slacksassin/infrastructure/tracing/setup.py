"""OpenTelemetry tracing through strands telemetry."""

import os

from strands.telemetry import StrandsTelemetry

from slacksassin.config.models import TracingConfig


def setup_tracing(config: TracingConfig) -> StrandsTelemetry | None:
    """Export traces when enabled and an OTLP endpoint is configured.

    ``OTEL_SERVICE_NAME`` defaults to ``config.service_name``.

    Returns:
        StrandsTelemetry instance if tracing is active, None otherwise.
    """
    if not config.enabled:
        return None
    if not os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT"):
        return None

    os.environ.setdefault("OTEL_SERVICE_NAME", config.service_name)

    telemetry = StrandsTelemetry()
    telemetry.setup_otlp_exporter()
    return telemetry
