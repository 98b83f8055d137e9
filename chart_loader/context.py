"""Tracks the chain of charts being resolved.

Resolution recurses through subcharts and declared dependencies. The chain is
kept in a context variable so that logs and decode errors can report which
dependency of which parent chart was being loaded.
"""

import contextvars
from contextlib import contextmanager
import logging
from time import perf_counter
from typing import Generator


_LOGGER = logging.getLogger(__name__)

__all__ = [
    "chart_context",
    "current_chart_path",
]


_chart_path: contextvars.ContextVar[tuple[str, ...]] = contextvars.ContextVar(
    "chart_path", default=()
)


def current_chart_path() -> list[str]:
    """Return the chart names from the outermost chart to the current one."""
    return list(_chart_path.get())


@contextmanager
def chart_context(name: str) -> Generator[None, None, None]:
    """Push a chart onto the resolution chain for the duration of the block."""
    stack = _chart_path.get()
    token = _chart_path.set(stack + (name,))
    label = " > ".join(stack + (name,))
    t1 = perf_counter()
    _LOGGER.debug("[Chart] > %s", label)
    try:
        yield
    finally:
        t2 = perf_counter()
        _chart_path.reset(token)
        _LOGGER.debug("[Chart] < %s (%0.2fs)", label, (t2 - t1))
