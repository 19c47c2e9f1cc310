"""
Telemetry service for structured logging.

This module provides structured JSON logging with request correlation and
a lightweight metrics hook that writes metric samples to the log stream.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Optional, Dict

from middleware.request_id import request_id_var


class JSONFormatter(logging.Formatter):
    """
    Log formatter that outputs one JSON object per record.
    
    Each log entry contains:
    - timestamp: ISO 8601 formatted UTC timestamp
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - message: The log message
    - logger: Name of the logger that produced the entry
    - request_id: Correlation ID of the HTTP request, if any
    
    Additional fields can be included via the 'extra_data' attribute
    on the log record.
    """
    
    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "request_id": request_id_var.get(""),
        }
        
        if record.module:
            log_data["module"] = record.module
        if record.funcName and record.funcName != "<module>":
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno
        
        if hasattr(record, "extra_data") and record.extra_data:
            log_data.update(record.extra_data)
        
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        
        if record.stack_info:
            log_data["stack_trace"] = record.stack_info
        
        return json.dumps(log_data, default=str)


class TelemetryService:
    """
    Centralized logging and metrics for the service.
    
    Installs the JSON formatter on the root logger at the level given by
    settings.log_level and records metric samples as DEBUG log entries.
    """
    
    def __init__(self, settings: Optional[Any] = None):
        """
        Initialize the telemetry service.
        
        Args:
            settings: Application settings providing log_level
        """
        self.settings = settings
        self._logger = None
        self._setup_logging()
    
    def _setup_logging(self) -> None:
        log_level_str = "INFO"
        if self.settings and hasattr(self.settings, "log_level"):
            log_level_str = self.settings.log_level
        
        log_level = getattr(logging, log_level_str.upper(), logging.INFO)
        
        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)
        
        # Remove existing handlers to avoid duplicate logs
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        
        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setLevel(log_level)
        stdout_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(stdout_handler)
        
        self._logger = logging.getLogger("telemetry")
        self._logger.info("Telemetry service initialized", extra={
            "extra_data": {"log_level": log_level_str}
        })
    
    def record_metric(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Record a metric sample, e.g. cache hits and misses.
        
        Args:
            name: Name of the metric
            value: Metric value
            tags: Optional tags for metric dimensions
        """
        metric_data: Dict[str, Any] = {
            "metric_name": name,
            "metric_value": value,
        }
        
        if tags:
            metric_data["tags"] = tags
        
        self._logger.debug(
            f"Metric: {name}={value}",
            extra={"extra_data": metric_data}
        )


def initialize_telemetry(settings: Optional[Any] = None) -> TelemetryService:
    """
    Install JSON logging and return the telemetry service.
    
    Args:
        settings: Application settings for configuration
        
    Returns:
        The initialized telemetry service
    """
    return TelemetryService(settings)
