"""Exponential backoff with jitter for remote operations."""

import logging
import random
import time
from typing import Callable, Optional, TypeVar, Union

from .utils import RETRY_INITIAL_TIMEOUT, RETRY_MAX_FACTOR, RETRY_MAX_TIMEOUT

logger = logging.getLogger(__name__)

T = TypeVar("T")


def exponential_retry(
    operation: Callable[[], T],
    retry_on: Union[type[BaseException], tuple[type[BaseException], ...]] = Exception,
    max_attempts: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
    rng: Optional[random.Random] = None,
) -> T:
    """Call an operation until it succeeds or the backoff envelope is exhausted.

    The first retry waits one second. After every failed attempt the wait is
    multiplied by a random factor drawn uniformly from [0, 4), so the delay
    grows on average but jitters between callers. Once the wait reaches 64
    seconds the last error is raised.

    There is no attempt cap unless ``max_attempts`` is given: termination is
    driven by the growing timeout alone.

    Args:
        operation: Zero-argument callable performing the remote call
        retry_on: Exception type(s) that trigger a retry; anything else
            propagates immediately
        max_attempts: Optional hard limit on the number of calls
        sleep: Sleep function (injectable for tests)
        rng: Random generator used for the jitter factor

    Returns:
        The operation's return value

    Raises:
        The last exception raised by the operation once retries are exhausted

    Examples:
        >>> exponential_retry(lambda: "ok")
        'ok'
    """
    rng = rng or random.Random()
    timeout = RETRY_INITIAL_TIMEOUT
    attempt = 0

    while True:
        attempt += 1
        try:
            return operation()
        except retry_on as e:
            if max_attempts is not None and attempt >= max_attempts:
                logger.warning(f"Giving up after {attempt} attempt(s): {e}")
                raise
            logger.debug(f"Attempt {attempt} failed ({e}), sleeping {timeout:.2f}s")
            sleep(timeout)
            timeout *= RETRY_MAX_FACTOR * rng.randrange(1000) / 1000.0
            if timeout >= RETRY_MAX_TIMEOUT:
                logger.warning(f"Giving up after {attempt} attempt(s): {e}")
                raise
