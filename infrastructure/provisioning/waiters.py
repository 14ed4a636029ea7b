"""Polling helper for stages that block on remote state."""

import time
from collections.abc import Callable
from typing import TypeVar

from .errors import StageTimeout

T = TypeVar("T")


def wait_until(
  check: Callable[[], T | None],
  *,
  description: str,
  timeout: float,
  poll_interval: float,
  deadline: float | None = None,
  error: type[StageTimeout] = StageTimeout,
  stage: str | None = None,
  sleep: Callable[[float], None] = time.sleep,
  clock: Callable[[], float] = time.monotonic,
) -> T:
  """Call ``check`` until it returns something other than None.

  Raises ``error`` once ``timeout`` seconds pass without a result. When
  ``deadline`` (a ``clock`` reading) is given it replaces ``timeout``, so
  several waits can share one budget. ``check`` may raise to abort the wait
  early.
  """
  if deadline is None:
    deadline = clock() + timeout
  while True:
    result = check()
    if result is not None:
      return result
    remaining = deadline - clock()
    if remaining <= 0:
      raise error(f"Timed out after {timeout:.0f}s waiting for {description}", stage=stage)
    sleep(min(poll_interval, remaining))
