"""Observability utilities for logging and metrics."""

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .logging_config import get_logger


@dataclass
class LogContext:
    """Context information for structured logging."""

    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        """Create new context with operation set."""
        return LogContext(
            correlation_id=self.correlation_id,
            operation=operation,
            component=self.component,
            metadata=self.metadata.copy(),
        )

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        """Create new context with additional metadata."""
        new_metadata = self.metadata.copy()
        new_metadata.update(kwargs)
        return LogContext(
            correlation_id=self.correlation_id,
            operation=self.operation,
            component=self.component,
            metadata=new_metadata,
        )


class StructuredLogger:
    """Logger that renders a LogContext into each message."""

    def __init__(self, name: str = "renderer", logger: Optional[logging.Logger] = None):
        self._logger = logger or get_logger(name)

    @staticmethod
    def format_message(
        message: str, context: Optional[LogContext] = None, **kwargs: Any
    ) -> str:
        if context is None:
            if not kwargs:
                return message
            extras = ", ".join(f"{k}={v}" for k, v in kwargs.items())
            return f"{message} ({extras})"

        formatted = f"[{context.correlation_id}] {message}"
        if context.operation:
            formatted = f"[{context.operation}] {formatted}"

        metadata = {**context.metadata, **kwargs}
        if metadata:
            extras = ", ".join(f"{k}={v}" for k, v in metadata.items())
            formatted = f"{formatted} ({extras})"
        return formatted

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.debug(self.format_message(message, context, **kwargs))

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.info(self.format_message(message, context, **kwargs))

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.warning(self.format_message(message, context, **kwargs))

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._logger.error(self.format_message(message, context, **kwargs))


@dataclass
class PerformanceMetrics:
    """Performance metrics for operations."""

    operation: str
    start_time: float
    end_time: float
    success: bool
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Calculate operation duration in seconds."""
        return self.end_time - self.start_time

    @property
    def duration_ms(self) -> float:
        """Calculate operation duration in milliseconds."""
        return self.duration * 1000


class MetricsCollector:
    """Thread-safe collector for performance metrics."""

    def __init__(self) -> None:
        self._metrics: List[PerformanceMetrics] = []
        self._lock = threading.Lock()

    def record_metric(self, metric: PerformanceMetrics) -> None:
        with self._lock:
            self._metrics.append(metric)

    def get_metrics(self, operation: Optional[str] = None) -> List[PerformanceMetrics]:
        """Get recorded metrics, optionally filtered by operation."""
        with self._lock:
            if operation:
                return [m for m in self._metrics if m.operation == operation]
            return self._metrics.copy()

    def count(self, operation: str) -> int:
        return len(self.get_metrics(operation))

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Get summary statistics for metrics."""
        metrics = self.get_metrics(operation)

        if not metrics:
            return {}

        durations = [m.duration for m in metrics]
        successful = [m for m in metrics if m.success]

        return {
            "total_operations": len(metrics),
            "successful_operations": len(successful),
            "failed_operations": len(metrics) - len(successful),
            "success_rate": len(successful) / len(metrics),
            "avg_duration": sum(durations) / len(durations),
            "min_duration": min(durations),
            "max_duration": max(durations),
            "total_duration": sum(durations),
        }

    def clear_metrics(self) -> None:
        with self._lock:
            self._metrics.clear()


@contextmanager
def record_operation(
    collector: Optional[MetricsCollector], operation: str, **metadata: Any
) -> Iterator[Dict[str, Any]]:
    """Time the enclosed block and record it in ``collector`` if one is given.

    The yielded dict can be updated to attach metadata discovered inside the
    block.
    """
    start_time = time.time()
    details: Dict[str, Any] = dict(metadata)
    success = False
    error_message = None
    try:
        yield details
        success = True
    except Exception as exc:
        error_message = str(exc)
        raise
    finally:
        if collector is not None:
            collector.record_metric(
                PerformanceMetrics(
                    operation=operation,
                    start_time=start_time,
                    end_time=time.time(),
                    success=success,
                    error_message=error_message,
                    metadata=details,
                )
            )
