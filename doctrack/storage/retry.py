"""
Retry policy for serializable store operations.

Stores never retry on their own. The immediate caller of a serializable
operation wraps the call with ``retry_on_serialization_failure`` so a lost
serialization conflict is replayed with the same inputs a bounded number of
times. Any other failure propagates on the first attempt.
"""

import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from doctrack.core.logger import doctrack_logger as logger
from doctrack.storage.errors import SerializationFailureError

SERIALIZATION_RETRY_ATTEMPTS = 5


def retry_on_serialization_failure(
    attempts: int = SERIALIZATION_RETRY_ATTEMPTS,
    max_wait: float = 1.0,
):
    """Build a decorator that replays a call after ``SerializationFailureError``.

    The last ``SerializationFailureError`` is re-raised once ``attempts`` run
    out.
    """
    return retry(
        retry=retry_if_exception_type(SerializationFailureError),
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.02, max=max_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def call_with_retry(func, *args, attempts: int = SERIALIZATION_RETRY_ATTEMPTS, **kwargs):
    return retry_on_serialization_failure(attempts)(func)(*args, **kwargs)
