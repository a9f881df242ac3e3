"""Prometheus metrics for AI calls, retries and plan limits."""

from prometheus_client import Counter, Histogram

# AI provider metrics
ai_request_latency_ms = Histogram(
    "ai_request_latency_ms",
    "AI provider call latency in milliseconds",
    ["operation", "outcome"],
    buckets=[50, 100, 250, 500, 1000, 2000, 4000, 8000, 16000, 32000, 64000],
)

ai_errors_total = Counter(
    "ai_errors_total",
    "Total AI provider call errors",
    ["operation", "reason"],
)

ai_retries_total = Counter(
    "ai_retries_total",
    "Total AI calls retried after a rate-limit error",
    ["operation"],
)

# Plan enforcement
daily_limit_rejections_total = Counter(
    "daily_limit_rejections_total",
    "Requests rejected because a FREE user hit the daily limit",
)


class PrometheusAIMetrics:
    """Prometheus-based AI call metrics implementation."""

    def record_latency(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record AI call latency."""
        ai_request_latency_ms.labels(operation=operation, outcome=outcome).observe(latency_ms)

    def inc_error(self, operation: str, reason: str) -> None:
        """Increment error counter."""
        ai_errors_total.labels(operation=operation, reason=reason).inc()

    def inc_retry(self, operation: str) -> None:
        """Increment retry counter."""
        ai_retries_total.labels(operation=operation).inc()

    def inc_limit_rejection(self) -> None:
        """Increment daily limit rejection counter."""
        daily_limit_rejections_total.inc()


metrics = PrometheusAIMetrics()
