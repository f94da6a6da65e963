"""Retry utilities for search backend calls.

This module provides retry decorators using tenacity for resilient
connection handling. Timeouts and API errors are not retried here.
"""

from __future__ import annotations

import logging

from elasticsearch import ConnectionError as ElasticConnectionError
from elasticsearch import ConnectionTimeout
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


def _is_retryable_connection_error(exc: BaseException) -> bool:
    # Timeouts surface immediately as SearchTimeoutError.
    return isinstance(exc, ElasticConnectionError) and not isinstance(
        exc,
        ConnectionTimeout,
    )


def retry_async(
    max_retries: int = 2,
    retry_delay: float = 0.5,
    backoff_factor: float = 2.0,
    retry_on=_is_retryable_connection_error,
):
    """Factory that returns a tenacity retry decorator configured with provided parameters.

    Args:
        max_retries: Maximum number of retry attempts (in addition to the first attempt).
        retry_delay: Initial delay between retries in seconds (used as multiplier).
        backoff_factor: Exponential backoff base for increasing delay between retries.
        retry_on: Predicate deciding whether an exception should trigger a retry.

    Returns:
        A tenacity retry decorator configured with the specified parameters.
    """
    return retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=retry_delay, exp_base=backoff_factor),
        retry=retry_if_exception(retry_on),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
