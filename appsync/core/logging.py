"""Logging setup for the API process and the Celery workers."""

from __future__ import annotations

import logging
import sys
from typing import Any

from opentelemetry import trace
from pythonjsonlogger import jsonlogger


class OTelJSONFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that injects OpenTelemetry trace/span identifiers.
    """

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        ctx = trace.get_current_span().get_span_context()
        if ctx.is_valid:
            log_record["trace_id"] = trace.format_trace_id(ctx.trace_id)
            log_record["span_id"] = trace.format_span_id(ctx.span_id)

        if "level" in log_record:
            log_record["level"] = str(log_record["level"]).upper()
        else:
            log_record["level"] = record.levelname


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logger to emit JSON logs with OTel correlation.
    """
    handler = logging.StreamHandler(sys.stdout)
    formatter = OTelJSONFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level"},
    )
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    # Remove existing handlers to avoid duplicate logs when reloading
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)

    root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").disabled = True
    logging.getLogger("httpx").setLevel("WARNING")
    logging.getLogger("httpcore").setLevel("WARNING")
