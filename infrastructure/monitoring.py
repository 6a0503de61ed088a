"""
Monitoring Infrastructure: Structured Logging and Prometheus Metrics

JSON structured logging for the API process via structlog, and the
Prometheus counters exported at /metrics.
"""

import logging
import sys
from typing import Optional

import structlog
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from core.enums import RateLimitOutcome


def configure_structlog(level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog for API process logging.

    Sets up processors for:
    - Context variables (request id bound by middleware)
    - ISO 8601 timestamps
    - Exception formatting
    - JSON or console rendering
    """
    renderer = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structlog logger instance bound with a name context.

    Args:
        name: Logger name (typically module __name__)
    """
    return structlog.get_logger(name)


class MetricsCollector:
    """
    Prometheus metrics for the request path, the counter store and the
    field cipher.

    Each instance owns its registry so test processes can build several.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by method and status",
            labelnames=["method", "status"],
            registry=self.registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency",
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
            labelnames=["method"],
            registry=self.registry,
        )

        self.cache_hits_total = Counter(
            "cache_hits_total", "Response cache hits", labelnames=["namespace"], registry=self.registry
        )
        self.cache_misses_total = Counter(
            "cache_misses_total",
            "Response cache misses",
            labelnames=["namespace"],
            registry=self.registry,
        )
        self.cache_errors_total = Counter(
            "cache_errors_total",
            "Cache operations degraded because the store failed",
            labelnames=["operation"],
            registry=self.registry,
        )

        self.rate_limit_decisions_total = Counter(
            "rate_limit_decisions_total",
            "Rate-limit checks by action and outcome",
            labelnames=["action", "outcome"],
            registry=self.registry,
        )

        self.decryption_failures_total = Counter(
            "decryption_failures_total",
            "Stored envelopes that failed to decrypt",
            labelnames=["reason"],
            registry=self.registry,
        )
        self.prompt_copies_total = Counter(
            "prompt_copies_total", "Successful prompt copy operations", registry=self.registry
        )

    def record_request(self, method: str, status: int, duration_seconds: float) -> None:
        self.http_requests_total.labels(method=method, status=str(status)).inc()
        self.http_request_duration_seconds.labels(method=method).observe(duration_seconds)

    def record_cache_hit(self, namespace: str) -> None:
        self.cache_hits_total.labels(namespace=namespace).inc()

    def record_cache_miss(self, namespace: str) -> None:
        self.cache_misses_total.labels(namespace=namespace).inc()

    def record_cache_error(self, operation: str) -> None:
        self.cache_errors_total.labels(operation=operation).inc()

    def record_rate_limit(self, action: str, outcome: RateLimitOutcome) -> None:
        self.rate_limit_decisions_total.labels(action=action, outcome=outcome.value).inc()

    def record_decryption_failure(self, reason: str) -> None:
        self.decryption_failures_total.labels(reason=reason).inc()

    def record_prompt_copy(self) -> None:
        self.prompt_copies_total.inc()

    def export_metrics(self) -> bytes:
        """Export metrics in Prometheus text format."""
        return generate_latest(self.registry)

    def get_content_type(self) -> str:
        return CONTENT_TYPE_LATEST
