"""Telemetry instrumentation unit tests."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest
from salvo.engine.coordinate import Coordinate
from salvo.engine.grid import Grid
from salvo.protocol.codec import encode_grid, encode_player
from salvo.server import coordinator as coordinator_module
from salvo.server.coordinator import RoomCoordinator
from salvo.telemetry import config as telemetry_config_module
from salvo.telemetry import logger as logger_module
from salvo.telemetry import metrics as metrics_module
from salvo.telemetry import tracer as tracer_module
from salvo.telemetry.config import TelemetryConfig


class DummySpan:
    def __init__(self, names: list[str], span_name: str) -> None:
        self._names = names
        self._names.append(span_name)
        self.attributes: dict = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    def set_attribute(self, key, value):
        self.attributes[key] = value


class DummyTracer:
    def __init__(self) -> None:
        self.span_names: list[str] = []
        self.spans: list[DummySpan] = []

    def start_as_current_span(self, name: str):
        span = DummySpan(self.span_names, name)
        self.spans.append(span)
        return span


def reset_singletons() -> None:
    tracer_module._TRACERS = {}
    tracer_module._TRACER_PROVIDER = None
    metrics_module._METERS = {}
    metrics_module._METER_PROVIDER = None
    metrics_module._INSTRUMENTS = {}


def test_lazy_init_tracer(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    assert tracer_module.get_tracer() is tracer_module.get_tracer()

    provider_instance = MagicMock()
    provider_instance.get_tracer.return_value = MagicMock()
    monkeypatch.setattr(tracer_module, "TracerProvider", MagicMock(return_value=provider_instance))
    monkeypatch.setattr(tracer_module, "OTLPSpanExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(tracer_module, "BatchSpanProcessor", MagicMock())
    monkeypatch.setattr(tracer_module.trace, "set_tracer_provider", MagicMock())
    tracer_module.init_tracing(TelemetryConfig(enable_tracing=True, otlp_traces_endpoint="http://example"))
    assert tracer_module.get_tracer("salvo") is provider_instance.get_tracer.return_value
    tracer_module.OTLPSpanExporter.assert_called_once_with(endpoint="http://example", insecure=True)

    meter_provider = MagicMock()
    meter_provider.get_meter.return_value = MagicMock()
    monkeypatch.setattr(metrics_module, "MeterProvider", MagicMock(return_value=meter_provider))
    monkeypatch.setattr(metrics_module, "OTLPMetricExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(metrics_module, "PeriodicExportingMetricReader", MagicMock())
    monkeypatch.setattr(metrics_module.otel_metrics, "set_meter_provider", MagicMock())
    metrics_module.init_metrics(TelemetryConfig(enable_metrics=True, otlp_metrics_endpoint="http://example"))
    assert metrics_module.get_meter("salvo") is meter_provider.get_meter.return_value
    reset_singletons()


def test_tracers_and_meters_are_cached_per_name() -> None:
    reset_singletons()
    grid_tracer = tracer_module.get_tracer("salvo.engine.grid")
    assert tracer_module.get_tracer("salvo.engine.grid") is grid_tracer
    assert set(tracer_module._TRACERS) == {"salvo.engine.grid"}
    tracer_module.get_tracer("salvo.server.coordinator")
    assert set(tracer_module._TRACERS) == {"salvo.engine.grid", "salvo.server.coordinator"}

    game_meter = metrics_module.get_meter("salvo.engine.game")
    assert metrics_module.get_meter("salvo.engine.game") is game_meter
    metrics_module.get_meter("salvo.engine.placement")
    assert set(metrics_module._METERS) == {"salvo.engine.game", "salvo.engine.placement"}
    reset_singletons()


def test_record_game_metric_reuses_counters(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    meter = MagicMock()
    monkeypatch.setattr(metrics_module, "_METERS", {"salvo": meter})

    metrics_module.record_game_metric("salvo_test_total", 1, {"event": "JOIN_GAME"})
    metrics_module.record_game_metric("salvo_test_total", 2)

    meter.create_counter.assert_called_once_with("salvo_test_total", unit="1")
    counter = meter.create_counter.return_value
    assert counter.add.call_args_list[0].args == (1,)
    assert counter.add.call_args_list[0].kwargs == {"attributes": {"event": "JOIN_GAME"}}
    assert counter.add.call_args_list[1].kwargs == {"attributes": {}}
    reset_singletons()


def test_logging_init_noop() -> None:
    logger = logger_module.get_logger()
    handlers = list(logger.handlers)
    assert logger_module.init_logging(TelemetryConfig()) is logger
    assert logger.handlers == handlers


def test_console_logging_levels() -> None:
    logger = logger_module.configure_console_logging(debug=True)
    assert logger.name == "salvo"
    assert logger.level == logging.DEBUG

    logger_module.configure_console_logging(debug=False)
    assert logger.level == logging.WARNING
    installed = [h for h in logger.handlers if h is logger_module._CONSOLE_HANDLER]
    assert len(installed) == 1


def test_extra_fields_are_rendered() -> None:
    record = logging.makeLogRecord({"msg": "shot_hit", "room_id": "r1", "coordinate": "A1"})
    assert logger_module._ExtraContextFilter().filter(record)
    assert record.context == "coordinate=A1 room_id=r1"

    bare = logging.makeLogRecord({"msg": "plain"})
    logger_module._ExtraContextFilter().filter(bare)
    assert bare.context == "-"


def test_init_telemetry_noop(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(telemetry_config_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(telemetry_config_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(telemetry_config_module, "init_logging", lambda cfg: calls.append("lo"))

    telemetry_config_module.init_telemetry(TelemetryConfig())
    assert calls == []


def test_init_telemetry_respects_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(telemetry_config_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(telemetry_config_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(telemetry_config_module, "init_logging", lambda cfg: calls.append("lo"))

    config = TelemetryConfig(enable_tracing=True, enable_logging=True)
    telemetry_config_module.init_telemetry(config)
    assert calls == ["tr", "lo"]


def test_load_telemetry_config_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    telemetry_config_module.load_telemetry_config.cache_clear()
    calls = {"count": 0}

    def fake_from_env(**overrides):
        calls["count"] += 1
        return TelemetryConfig(enable_tracing=True)

    monkeypatch.setattr(
        telemetry_config_module.TelemetryConfig,
        "from_env",
        classmethod(lambda cls, **overrides: fake_from_env(**overrides)),
    )

    first = telemetry_config_module.load_telemetry_config()
    second = telemetry_config_module.load_telemetry_config()
    assert first is second
    assert calls["count"] == 1
    telemetry_config_module.load_telemetry_config.cache_clear()


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
                 "OTEL_EXPORTER_OTLP_LOGS_ENDPOINT", "OTEL_SERVICE_NAME", "OTEL_SERVICE_NAMESPACE",
                 "SALVO_ENABLE_TRACING", "OTEL_TRACES_ENABLED", "SALVO_ENABLE_LOGGING", "OTEL_LOGS_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317/")
    monkeypatch.setenv("SALVO_ENABLE_METRICS", "no")
    monkeypatch.setenv("OTEL_RESOURCE_ATTRIBUTES", "deployment.environment=test,broken")

    config = TelemetryConfig.from_env(service_name="salvo-test")
    assert config.otlp_traces_endpoint == "http://collector:4317/v1/traces"
    assert config.otlp_logs_endpoint == "http://collector:4317/v1/logs"
    assert config.enable_tracing and config.enable_logging
    # An endpoint outranks an explicit "off" flag.
    assert config.enable_metrics
    assert config.service_name == "salvo-test"
    assert config.resource_attributes == {"deployment.environment": "test"}


def test_env_flag_reads_first_set_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SALVO_TEST_A", raising=False)
    monkeypatch.setenv("SALVO_TEST_B", "Yes")
    assert telemetry_config_module.env_flag("SALVO_TEST_A", "SALVO_TEST_B") is True
    monkeypatch.setenv("SALVO_TEST_A", "0")
    assert telemetry_config_module.env_flag("SALVO_TEST_A", "SALVO_TEST_B") is False
    assert telemetry_config_module.env_flag("SALVO_TEST_UNSET") is None


def test_coordinator_emits_spans_and_metrics(monkeypatch: pytest.MonkeyPatch, emitter, make_fleet) -> None:
    tracer = DummyTracer()
    metric_calls: list[tuple[str, float, dict | None]] = []
    monkeypatch.setattr(coordinator_module, "tracer", tracer)
    monkeypatch.setattr(
        coordinator_module,
        "record_game_metric",
        lambda name, value, attrs=None: metric_calls.append((name, value, attrs)),
    )

    coordinator = RoomCoordinator(emitter)
    alice, alice_grid = make_fleet("Alice")
    bob, bob_grid = make_fleet("Bob")
    for cid, (player, grid) in (("a", (alice, alice_grid)), ("b", (bob, bob_grid))):
        coordinator.join_game(cid, {"player": encode_player(player), "grid": encode_grid(grid), "roomId": "r1"})
    coordinator.start_game("a", {"roomId": "r1"})
    coordinator.click_square(
        "a",
        {
            "roomId": "r1",
            "sendingPlayerId": alice.id,
            "guessedGridId": bob_grid.id,
            "coordinate": {"row": 1, "col": 1},
        },
    )
    coordinator.disconnect("b")

    assert tracer.span_names == [
        "coordinator.join_game",
        "coordinator.join_game",
        "coordinator.start_game",
        "coordinator.click_square",
        "coordinator.disconnect",
    ]
    click_span = tracer.spans[3]
    assert click_span.attributes["result.ok"] is True
    assert click_span.attributes["shot.hit"] is True

    commands = [attrs for name, _, attrs in metric_calls if name == "salvo_coordinator_commands"]
    assert [attrs["event"] for attrs in commands] == ["JOIN_GAME", "JOIN_GAME", "START_GAME", "CLICK_SQUARE"]
    assert all(attrs["result"] == "ok" for attrs in commands)
    assert ("salvo_coordinator_disconnects", 1, None) in metric_calls


def test_failed_command_metric_carries_error_kind(monkeypatch: pytest.MonkeyPatch, emitter) -> None:
    metric_calls: list[dict] = []
    monkeypatch.setattr(
        coordinator_module,
        "record_game_metric",
        lambda name, value, attrs=None: metric_calls.append(attrs),
    )
    RoomCoordinator(emitter).start_game("a", {"roomId": "missing"})
    assert metric_calls == [{"event": "START_GAME", "result": "unknown_room"}]


def test_grid_counts_shots(monkeypatch: pytest.MonkeyPatch) -> None:
    from salvo.engine import grid as grid_module

    counter = MagicMock()
    monkeypatch.setattr(grid_module, "SHOT_COUNTER", counter)
    Grid().receive_shot(Coordinate(4, 4))
    counter.add.assert_called_once()
    assert counter.add.call_args.args[0] == 1
