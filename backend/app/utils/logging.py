"""Logging setup and structured loggers for requests and AI calls."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at startup."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class StructuredRequestLogger:
    """Structured logger for API requests."""

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        latency_ms: float,
        user_id: str | None = None,
    ) -> None:
        """Log a completed API request with structured data."""
        log_data: dict[str, Any] = {
            "method": method,
            "path": path,
            "status": status_code,
            "latency_ms": round(latency_ms, 2),
        }

        if user_id:
            log_data["user_id"] = user_id

        log_msg = f"{method} {path} {status_code} in {latency_ms:.0f}ms"

        if status_code < 500:
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})


class StructuredAILogger:
    """Structured logger for AI provider calls."""

    def log_call(
        self,
        operation: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log an AI call attempt with structured data."""
        log_data: dict[str, Any] = {
            "operation": operation,
            "attempt": attempt,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"AI call: {operation} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
