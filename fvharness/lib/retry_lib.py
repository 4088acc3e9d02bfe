'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

import logging
import time

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

log = logging.getLogger(__name__)


class RetryExhausted(RuntimeError):
    """A poll-retry step never succeeded within its attempt budget."""

    def __init__(self, description, attempts, last_error=None):
        self.description = description
        self.attempts = attempts
        self.last_error = last_error
        msg = f'{description} did not succeed after {attempts} attempt(s)'
        if last_error is not None:
            msg = f'{msg}: {last_error}'
        super().__init__(msg)


def poll_until(predicate, description, interval=2, max_attempts=150, retry_on=(), sleep=time.sleep):
    """
    Call predicate until it returns a truthy value.

    Parameters:
      predicate (callable): Zero-argument readiness check.
      description (str): Step name used in logs and in the exhaustion error.
      interval (float): Fixed delay in seconds between attempts, no backoff.
      max_attempts (int): Attempt budget, including the first call.
      retry_on (tuple): Exception types counted as a failed attempt instead of propagating.
      sleep (callable): Sleep function, replaceable in tests.

    Returns:
      The predicate's first truthy result.

    Raises:
      RetryExhausted: once max_attempts calls have failed.
    """
    def _log_attempt(retry_state):
        log.info(f'{description}: attempt {retry_state.attempt_number} not ready, retrying in {interval}s')

    attempts = []

    def _attempt():
        attempts.append(1)
        return predicate()

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda ok: not ok) | retry_if_exception_type(tuple(retry_on)),
        before_sleep=_log_attempt,
        sleep=sleep,
    )
    try:
        result = retrying(_attempt)
    except RetryError as e:
        last = e.last_attempt
        last_error = last.exception() if last.failed else None
        raise RetryExhausted(description, last.attempt_number, last_error) from e

    log.info(f'{description}: done after {len(attempts)} attempt(s)')
    return result
