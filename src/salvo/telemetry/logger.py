"""Logging helpers with optional OpenTelemetry export."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import TelemetryConfig

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s "
    "| trace_id=%(otelTraceID)s span_id=%(otelSpanID)s"
)

_LOGGER: logging.Logger | None = None
_OTLP_HANDLER: logging.Handler | None = None


class _OtelContextFilter(logging.Filter):
    """Ensures trace/span placeholders exist even when no context is active."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        if not hasattr(record, "otelTraceID"):
            record.otelTraceID = "-"
        if not hasattr(record, "otelSpanID"):
            record.otelSpanID = "-"
        return True


def get_logger(name: str = "salvo") -> logging.Logger:
    global _LOGGER
    if _LOGGER is None:
        _LOGGER = logging.getLogger(name)
    return _LOGGER


def init_logging(config: TelemetryConfig) -> logging.Logger:
    """Configure the ``salvo`` logger hierarchy and, if enabled, OTLP log export."""
    package_logger = logging.getLogger("salvo")
    package_logger.setLevel(config.log_level)
    _install_console_handler()

    logger = get_logger(config.service_name)
    if not config.enable_logging or not config.otlp_logs_endpoint:
        return logger

    from opentelemetry._logs import set_logger_provider
    from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
    from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
    from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
    from opentelemetry.sdk.resources import Resource

    provider = LoggerProvider(resource=Resource.create(config.resource()))
    exporter = OTLPLogExporter(endpoint=config.otlp_logs_endpoint, insecure=True)
    provider.add_log_record_processor(BatchLogRecordProcessor(exporter))
    set_logger_provider(provider)

    _install_otlp_handler(LoggingHandler(level=logging.NOTSET, logger_provider=provider))
    return logger


def _install_console_handler() -> None:
    """Attach a formatted stderr handler to the root logger once."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return
    logging.basicConfig(format=LOG_FORMAT)
    for existing in root_logger.handlers:
        existing.addFilter(_OtelContextFilter())


def _install_otlp_handler(handler: logging.Handler) -> None:
    """Attach the OTLP logging handler to the package logger, replacing any previous one."""
    global _OTLP_HANDLER
    package_logger = logging.getLogger("salvo")
    if _OTLP_HANDLER is not None:
        package_logger.removeHandler(_OTLP_HANDLER)
    handler.addFilter(_OtelContextFilter())
    package_logger.addHandler(handler)
    _OTLP_HANDLER = handler
