"""Telemetry configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

from pydantic import BaseModel, Field

from .logger import init_logging
from .metrics import init_metrics
from .tracer import init_tracing

TRUTHY = {"1", "true", "yes", "on"}


def env_flag(*names: str) -> bool | None:
    """Return the first boolean found among ``names``, or ``None`` if none is set."""
    for name in names:
        value = os.getenv(name)
        if value is not None:
            return value.strip().lower() in TRUTHY
    return None


class TelemetryConfig(BaseModel):
    """Runtime configuration for OpenTelemetry exporters."""

    enable_tracing: bool = False
    enable_metrics: bool = False
    enable_logging: bool = False
    otlp_traces_endpoint: str | None = None
    otlp_metrics_endpoint: str | None = None
    otlp_logs_endpoint: str | None = None
    service_name: str = "salvo"
    service_namespace: str = "game-server"
    resource_attributes: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_env(cls, **overrides: Any) -> "TelemetryConfig":
        """Construct config from env vars (`SALVO_*` + `OTEL_*`)."""

        data: Dict[str, Any] = cls().model_dump()

        flags = {
            "enable_tracing": ("SALVO_ENABLE_TRACING", "OTEL_TRACES_ENABLED"),
            "enable_metrics": ("SALVO_ENABLE_METRICS", "OTEL_METRICS_ENABLED"),
            "enable_logging": ("SALVO_ENABLE_LOGGING", "OTEL_LOGS_ENABLED"),
        }
        for field, env_names in flags.items():
            env_value = env_flag(*env_names)
            if env_value is not None:
                data[field] = env_value

        base_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

        def _endpoint(specific: str, suffix: str) -> str | None:
            value = os.getenv(specific)
            if value:
                return value
            if not base_endpoint:
                return None
            return f"{base_endpoint.rstrip('/')}/{suffix}"

        data["otlp_traces_endpoint"] = _endpoint("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "v1/traces")
        data["otlp_metrics_endpoint"] = _endpoint("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT", "v1/metrics")
        data["otlp_logs_endpoint"] = _endpoint("OTEL_EXPORTER_OTLP_LOGS_ENDPOINT", "v1/logs")

        if os.getenv("OTEL_SERVICE_NAME"):
            data["service_name"] = os.environ["OTEL_SERVICE_NAME"]
        if os.getenv("OTEL_SERVICE_NAMESPACE"):
            data["service_namespace"] = os.environ["OTEL_SERVICE_NAMESPACE"]

        resource_env = os.getenv("OTEL_RESOURCE_ATTRIBUTES")
        if resource_env:
            attrs = dict(data["resource_attributes"])
            for part in resource_env.split(","):
                key, sep, value = part.partition("=")
                if sep:
                    attrs[key.strip()] = value.strip()
            data["resource_attributes"] = attrs

        # An exporter endpoint turns its signal on.
        if data["otlp_traces_endpoint"]:
            data["enable_tracing"] = True
        if data["otlp_metrics_endpoint"]:
            data["enable_metrics"] = True
        if data["otlp_logs_endpoint"]:
            data["enable_logging"] = True

        data.update(overrides)
        return cls(**data)


@lru_cache(maxsize=1)
def load_telemetry_config() -> TelemetryConfig:
    """Load and cache telemetry config from the environment."""

    return TelemetryConfig.from_env()


def init_telemetry(config: TelemetryConfig | None = None) -> TelemetryConfig:
    """Initialise the telemetry signals the config enables."""

    resolved = config or load_telemetry_config()

    if resolved.enable_tracing:
        init_tracing(resolved)
    if resolved.enable_metrics:
        init_metrics(resolved)
    if resolved.enable_logging:
        init_logging(resolved)
    return resolved
