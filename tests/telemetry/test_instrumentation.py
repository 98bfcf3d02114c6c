"""Telemetry instrumentation unit tests."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from salvo.engine.errors import GameOverError
from salvo.engine.game import Side, TurnController, TurnState
from salvo.engine.grid import Coordinate
from salvo.engine.instrumented_game import InstrumentedTurnController
from salvo.engine.placement import Orientation, place
from salvo.telemetry import config as telemetry_config_module
from salvo.telemetry import logger as logger_module
from salvo.telemetry import metrics as metrics_module
from salvo.telemetry import tracer as tracer_module
from salvo.telemetry.config import TelemetryConfig


class DummySpan:
    def __init__(self, names: list[str], span_name: str) -> None:
        self._names = names
        self._names.append(span_name)
        self.ended = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    def set_attribute(self, *_):
        pass

    def record_exception(self, *_):
        pass

    def end(self):
        self.ended = True


class DummyTracer:
    def __init__(self) -> None:
        self.span_names: list[str] = []

    def start_as_current_span(self, name: str):
        return DummySpan(self.span_names, name)

    def start_span(self, name: str):
        return DummySpan(self.span_names, name)


def reset_singletons() -> None:
    tracer_module._TRACER = None
    tracer_module._TRACER_PROVIDER = None
    metrics_module._METER = None
    metrics_module._METER_PROVIDER = None
    metrics_module._INSTRUMENTS = {}
    logger_module._LOGGER = None


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "SALVO_ENABLE_TRACING",
        "SALVO_ENABLE_METRICS",
        "SALVO_ENABLE_LOGGING",
        "SALVO_LOG_LEVEL",
        "OTEL_TRACES_ENABLED",
        "OTEL_METRICS_ENABLED",
        "OTEL_LOGS_ENABLED",
        "OTEL_EXPORTER_OTLP_ENDPOINT",
        "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
        "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
        "OTEL_EXPORTER_OTLP_LOGS_ENDPOINT",
        "OTEL_SERVICE_NAME",
        "OTEL_SERVICE_NAMESPACE",
        "OTEL_RESOURCE_ATTRIBUTES",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_config_defaults_from_empty_env(clean_env: pytest.MonkeyPatch) -> None:
    config = TelemetryConfig.from_env()
    assert not config.enable_tracing
    assert not config.enable_metrics
    assert not config.enable_logging
    assert config.service_name == "salvo"
    assert config.log_level == "WARNING"


def test_config_reads_env(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("SALVO_ENABLE_METRICS", "yes")
    clean_env.setenv("SALVO_LOG_LEVEL", "debug")
    clean_env.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317/")
    clean_env.setenv("OTEL_SERVICE_NAME", "salvo-test")
    clean_env.setenv("OTEL_RESOURCE_ATTRIBUTES", "deployment.environment=ci, bogus")

    config = TelemetryConfig.from_env()
    assert config.enable_metrics
    assert config.log_level == "DEBUG"
    assert config.otlp_traces_endpoint == "http://collector:4317/v1/traces"
    assert config.otlp_logs_endpoint == "http://collector:4317/v1/logs"
    assert config.enable_tracing and config.enable_logging
    assert config.resource() == {
        "service.name": "salvo-test",
        "service.namespace": "game",
        "deployment.environment": "ci",
    }


def test_config_rejects_unknown_log_level() -> None:
    with pytest.raises(ValidationError):
        TelemetryConfig(log_level="chatty")


def test_lazy_init_tracer(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    assert tracer_module.get_tracer() is tracer_module.get_tracer()

    provider_instance = MagicMock()
    provider_instance.get_tracer.return_value = MagicMock()
    monkeypatch.setattr(tracer_module, "TracerProvider", MagicMock(return_value=provider_instance))
    monkeypatch.setattr(tracer_module, "OTLPSpanExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(tracer_module, "BatchSpanProcessor", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(tracer_module.trace, "set_tracer_provider", MagicMock())
    tracer_module.init_tracing(
        TelemetryConfig(enable_tracing=True, otlp_traces_endpoint="http://example")
    )
    assert tracer_module._TRACER is provider_instance.get_tracer.return_value

    tracer_module.shutdown_tracing()
    provider_instance.shutdown.assert_called_once()
    assert tracer_module._TRACER_PROVIDER is None
    reset_singletons()


def test_lazy_init_meter(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    meter_provider = MagicMock()
    meter_provider.get_meter.return_value = MagicMock()
    monkeypatch.setattr(metrics_module, "MeterProvider", MagicMock(return_value=meter_provider))
    monkeypatch.setattr(metrics_module, "OTLPMetricExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(
        metrics_module, "PeriodicExportingMetricReader", MagicMock(return_value=MagicMock())
    )
    monkeypatch.setattr(metrics_module.otel_metrics, "set_meter_provider", MagicMock())
    metrics_module.init_metrics(
        TelemetryConfig(enable_metrics=True, otlp_metrics_endpoint="http://example")
    )
    assert metrics_module._METER is meter_provider.get_meter.return_value

    metrics_module.record_game_metric("salvo_test_total", 2, {"side": "player"})
    metrics_module.record_game_metric("salvo_test_total", 1)
    counter = meter_provider.get_meter.return_value.create_counter
    counter.assert_called_once_with("salvo_test_total")
    assert counter.return_value.add.call_count == 2
    reset_singletons()


def test_logging_init_without_exporter_sets_level() -> None:
    reset_singletons()
    logger = logger_module.get_logger("salvo")
    assert logger_module.init_logging(TelemetryConfig(log_level="info")) is logger
    assert logging.getLogger("salvo").level == logging.INFO
    logging.getLogger("salvo").setLevel(logging.NOTSET)
    reset_singletons()


def test_init_telemetry_only_configures_logging_by_default(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls: list[str] = []

    monkeypatch.setattr(telemetry_config_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(telemetry_config_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(telemetry_config_module, "init_logging", lambda cfg: calls.append("lo"))

    telemetry_config_module.init_telemetry(TelemetryConfig())
    assert calls == ["lo"]


def test_init_telemetry_respects_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(telemetry_config_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(telemetry_config_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(telemetry_config_module, "init_logging", lambda cfg: calls.append("lo"))

    telemetry_config_module.init_telemetry(TelemetryConfig(enable_tracing=True, enable_metrics=True))
    assert calls == ["tr", "me", "lo"]


def test_load_telemetry_config_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    telemetry_config_module.load_telemetry_config.cache_clear()
    calls = {"count": 0}

    def fake_from_env(cls, **overrides):
        calls["count"] += 1
        return TelemetryConfig(enable_tracing=True)

    monkeypatch.setattr(TelemetryConfig, "from_env", classmethod(fake_from_env))

    first = telemetry_config_module.load_telemetry_config()
    second = telemetry_config_module.load_telemetry_config()
    assert first is second
    assert calls["count"] == 1
    telemetry_config_module.load_telemetry_config.cache_clear()


def test_instrumented_controller_emits_spans_and_metrics(monkeypatch: pytest.MonkeyPatch) -> None:
    tracer = DummyTracer()
    metrics_calls: list[tuple[str, float, dict | None]] = []
    logger = MagicMock()

    monkeypatch.setattr("salvo.engine.instrumented_game.get_tracer", lambda *_: tracer)
    monkeypatch.setattr("salvo.engine.instrumented_game.get_logger", lambda *_: logger)
    monkeypatch.setattr(
        "salvo.engine.instrumented_game.record_game_metric",
        lambda name, value, attrs=None: metrics_calls.append((name, value, attrs)),
    )
    monkeypatch.setattr(TurnController, "setup_opponent", lambda self: [])

    controller = InstrumentedTurnController(rng_seed=0)
    place(controller.grids[Side.PLAYER], Coordinate(9, 0), 3, Orientation.RIGHT)
    place(controller.grids[Side.OPPONENT], Coordinate(0, 0), 1, Orientation.RIGHT)

    controller.setup_opponent()
    assert "salvo.engine.game" in tracer.span_names
    assert "salvo.engine.setup_opponent" in tracer.span_names

    tracer.span_names.clear()
    metrics_calls.clear()
    controller.player_attack(Coordinate(0, 0))
    assert controller.state is TurnState.PLAYER_WON
    assert "salvo.engine.fire" in tracer.span_names
    metric_names = {name for name, _, _ in metrics_calls}
    assert "salvo_shots_total" in metric_names
    assert "salvo_game_completed_total" in metric_names
    assert "salvo_game_duration_seconds" in metric_names

    metrics_calls.clear()
    with pytest.raises(GameOverError):
        controller.player_attack(Coordinate(5, 5))
    assert [name for name, _, _ in metrics_calls] == ["salvo_game_invalid_shots_total"]
    assert metrics_calls[0][2] == {"side": "player", "reason": "GameOverError"}
