# napal/utils/parallel.py
from __future__ import annotations
import concurrent.futures
import logging
from typing import Any, Callable, Iterable, Sequence

_LOG = logging.getLogger(__name__)


def run_all(fn: Callable[..., Any],
            tasks: Iterable[Sequence[Any]],
            max_workers: int | None = None,
            label: str = "task") -> list[Any]:
    """
    Run ``fn(*task)`` for every task and return the results in task order.

    This is a fail-fast barrier: the first task that raises cancels every
    task that has not started yet, and its exception is re-raised to the
    caller once the running ones have finished. ``max_workers == 1`` runs the
    tasks in-process, one after the other, with the same semantics.
    ``fn`` and the task arguments must be picklable otherwise.
    """
    tasks = [tuple(t) for t in tasks]
    if not tasks:
        return []

    if max_workers == 1 or len(tasks) == 1:
        return [fn(*t) for t in tasks]

    results: list[Any] = [None] * len(tasks)
    with concurrent.futures.ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(fn, *t): i for i, t in enumerate(tasks)}
        try:
            for future in concurrent.futures.as_completed(futures):
                results[futures[future]] = future.result()
        except BaseException:
            cancelled = sum(1 for f in futures if f.cancel())
            _LOG.debug("%s failed; cancelled %d pending %s(s)", label, cancelled, label)
            raise
    return results
