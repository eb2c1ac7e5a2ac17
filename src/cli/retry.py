"""Retry utilities with exponential backoff."""

import logging

import httpx
import structlog
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.stdlib.get_logger(__name__)


def http_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
    exceptions: tuple = (httpx.TransportError,),
):
    """Retry decorator for remote catalog/API calls.

    Works on both sync and async callables; the last exception is re-raised.

    Args:
        max_attempts: Max attempts including the first
        min_wait: Min wait between retries (seconds)
        max_wait: Max wait between retries (seconds)
        exceptions: Exception types to retry on
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def retry_settings(config: dict) -> dict:
    """Extract ``CatalogClient`` retry kwargs from a config dict's ``retry`` section."""
    retry_config = config.get("retry", {})
    return {
        "max_attempts": retry_config.get("max_attempts", 3),
        "min_wait": retry_config.get("min_wait", 1.0),
        "max_wait": retry_config.get("max_wait", 10.0),
    }
