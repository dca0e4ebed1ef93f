from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_JOBS = 8


def fan_out(fn: Callable[[T], R], items: Iterable[T], jobs: int = DEFAULT_JOBS) -> list[R]:
    """Apply ``fn`` to every item, concurrently when there is more than one, preserving input order."""
    work = list(items)
    if jobs > 1 and len(work) > 1:
        with ThreadPoolExecutor(max_workers=min(jobs, len(work))) as ex:
            return list(ex.map(fn, work))
    return [fn(item) for item in work]
