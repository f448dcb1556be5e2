# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/utils/retry.py

import functools
import time
from typing import Callable


def retry(
    *,
    attempts: int,
    delay: float = 0.0,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    on_retry: Callable[[int, Exception], None] | None = None,
):
    """
    Retry decorator for read-modify-write operations.

    attempts: total number of calls, including the first one
    delay: seconds between attempts
    retry_on: exception types that trigger another attempt
    on_retry: callback(attempt, exception) before sleeping

    The last exception is re-raised unchanged once attempts run out, so
    callers (and the work queue) still see the original error type.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            for attempt in range(1, attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retry_on as exc:
                    if attempt == attempts:
                        raise
                    if on_retry:
                        on_retry(attempt, exc)
                    if delay:
                        time.sleep(delay)
        return wrapper
    return decorator
