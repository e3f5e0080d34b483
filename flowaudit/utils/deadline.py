"""Cooperative time budgets for analysis stages.

A deadline is a time.monotonic() value, or None for no budget. Searches
that can grow with the size of the graph call check_deadline() as they go
and stop with AnalysisTimeoutError once the deadline has passed.
"""

import time


class AnalysisTimeoutError(TimeoutError):
    """A document ran past its time budget."""


def deadline_after(seconds: float | None) -> float | None:
    if seconds is None:
        return None
    return time.monotonic() + seconds


def check_deadline(deadline: float | None, stage: str) -> None:
    if deadline is not None and time.monotonic() > deadline:
        raise AnalysisTimeoutError(f"time budget exceeded during {stage}")
