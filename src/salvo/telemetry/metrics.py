"""Metrics helper utilities."""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

from opentelemetry import metrics as otel_metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.metrics import Counter, Meter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

if TYPE_CHECKING:  # pragma: no cover
    from .config import TelemetryConfig

_METER_PROVIDER: MeterProvider | None = None
_METERS: dict[str, Meter] = {}
_INSTRUMENTS: dict[str, Counter] = {}

MetricAttributes = Mapping[str, str | bool | int | float]


def get_meter(name: str = "salvo") -> Meter:
    meter = _METERS.get(name)
    if meter is None:
        meter = _METERS[name] = otel_metrics.get_meter(name)
    return meter


def init_metrics(config: TelemetryConfig) -> Meter:
    """Install a MeterProvider exporting to the configured OTLP endpoint."""
    global _METER_PROVIDER, _INSTRUMENTS

    attributes = {
        "service.name": config.service_name,
        "service.namespace": config.service_namespace,
    }
    attributes.update(config.resource_attributes)

    readers = []
    if config.otlp_metrics_endpoint:
        exporter = OTLPMetricExporter(endpoint=config.otlp_metrics_endpoint, insecure=True)
        readers.append(PeriodicExportingMetricReader(exporter, export_interval_millis=10000))

    provider = MeterProvider(resource=Resource.create(attributes), metric_readers=readers)
    otel_metrics.set_meter_provider(provider)

    _METER_PROVIDER = provider
    meter = _METERS[config.service_name] = provider.get_meter(config.service_name)
    _INSTRUMENTS = {}
    return meter


def record_game_metric(name: str, value: float = 1, attrs: MetricAttributes | None = None) -> None:
    """Add ``value`` to the counter called ``name``, creating it on first use."""
    instrument = _INSTRUMENTS.get(name)
    if instrument is None:
        instrument = get_meter().create_counter(name, unit="1")
        _INSTRUMENTS[name] = instrument
    instrument.add(value, attributes=attrs or {})
