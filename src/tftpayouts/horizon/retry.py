"""
tftpayouts/horizon/retry.py

Fixed-backoff retry for Horizon server errors.

Only 5xx responses are retried. Everything else (4xx responses, transport
failures) is raised to the caller, which decides whether to abort or mask.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..errors import RetriesExhaustedError
from .client import HorizonError

logger = logging.getLogger("tftpayouts.horizon.retry")


@dataclass
class RetryPolicy:
    """
    How to retry Horizon calls that fail with a server error.

    max_retries=None keeps retrying until the call succeeds.
    """
    backoff_seconds: float = 1.0
    max_retries: Optional[int] = None

    @property
    def bounded(self) -> bool:
        return self.max_retries is not None


def call_with_retry(
    func: Callable[..., Any],
    *args,
    policy: Optional[RetryPolicy] = None,
    context: str = "horizon call",
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """
    Call func(*args), retrying on 5xx HorizonErrors.

    Args:
        func: Callable performing the Horizon request
        *args: Arguments for func
        policy: Retry policy (default: 1s backoff, unbounded)
        context: Description used in log messages
        sleep: Sleep function, replaced in tests

    Returns:
        Whatever func returns

    Raises:
        HorizonError: For non-5xx responses
        HorizonTransportError: For transport failures
        RetriesExhaustedError: If a bounded policy runs out of retries
    """
    if policy is None:
        policy = RetryPolicy()

    retries = 0
    while True:
        try:
            return func(*args)
        except HorizonError as e:
            if not e.is_server_error:
                raise
            if policy.bounded and retries >= policy.max_retries:
                raise RetriesExhaustedError(context, retries + 1) from e
            retries += 1
            logger.warning(
                f"{context}: server error {e.status}, retry {retries} in {policy.backoff_seconds}s"
            )
            sleep(policy.backoff_seconds)
