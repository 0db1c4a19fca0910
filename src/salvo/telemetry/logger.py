"""Logging helpers: console output for the server plus optional OTLP export."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import TelemetryConfig

ROOT_LOGGER_NAME = "salvo"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s | %(context)s"

_CONSOLE_HANDLER: logging.Handler | None = None
_OTLP_HANDLER_INSTALLED = False

# Attributes every LogRecord has; anything else arrived through ``extra``.
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "context"}


class _ExtraContextFilter(logging.Filter):
    """Renders ``extra={...}`` fields into a ``context`` attribute for the formatter."""

    def filter(self, record: logging.LogRecord) -> bool:
        fields = {key: value for key, value in vars(record).items() if key not in _RESERVED}
        record.context = " ".join(f"{key}={value}" for key, value in sorted(fields.items())) or "-"
        return True


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    return logging.getLogger(name)


def configure_console_logging(debug: bool = False) -> logging.Logger:
    """Attach a console handler to the ``salvo`` logger tree.

    With ``debug`` set, connection and game events are logged at DEBUG and
    INFO; otherwise only warnings and errors get through.
    """
    global _CONSOLE_HANDLER
    logger = get_logger()
    level = logging.DEBUG if debug else logging.WARNING
    logger.setLevel(level)
    if _CONSOLE_HANDLER is None:
        _CONSOLE_HANDLER = logging.StreamHandler()
        _CONSOLE_HANDLER.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        _CONSOLE_HANDLER.addFilter(_ExtraContextFilter())
        logger.addHandler(_CONSOLE_HANDLER)
    _CONSOLE_HANDLER.setLevel(level)
    return logger


def init_logging(config: TelemetryConfig) -> logging.Logger:
    """Forward ``salvo`` log records to an OTLP collector when one is configured."""
    global _OTLP_HANDLER_INSTALLED
    logger = get_logger()
    if _OTLP_HANDLER_INSTALLED or not config.otlp_logs_endpoint:
        return logger

    from opentelemetry._logs import set_logger_provider
    from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
    from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
    from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
    from opentelemetry.sdk.resources import Resource

    attributes = {
        "service.name": config.service_name,
        "service.namespace": config.service_namespace,
    }
    attributes.update(config.resource_attributes)
    provider = LoggerProvider(resource=Resource.create(attributes))
    exporter = OTLPLogExporter(endpoint=config.otlp_logs_endpoint, insecure=True)
    provider.add_log_record_processor(BatchLogRecordProcessor(exporter))
    set_logger_provider(provider)

    logger.addHandler(LoggingHandler(level=logging.INFO, logger_provider=provider))
    _OTLP_HANDLER_INSTALLED = True
    return logger
