"""Bounded-concurrency execution of independent tasks with fail-fast semantics."""

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, ThreadPoolExecutor, wait
from typing import Any, Callable, Sequence

from tqdm import tqdm


_EXECUTORS = {
    "thread": ThreadPoolExecutor,
    "process": ProcessPoolExecutor,
}


class SchedulerError(RuntimeError):
    """Raised when a scheduled task fails; the underlying error is the cause."""

    def __init__(self, message: str, index: int):
        super().__init__(message)
        self.index = index


def run_bounded(
    tasks: Sequence[Callable[[], Any]],
    limit: int,
    *,
    executor: str = "thread",
    logger=None,
    use_progress: bool = False,
    desc: str = "tasks",
) -> list:
    """Run zero-argument `tasks` with at most `limit` in flight; return results in task order.

    On the first failure no further tasks are started, running tasks drain, and a
    `SchedulerError` is raised carrying the failing index.
    """
    log = logger or logging.getLogger(__name__)
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer; got {limit!r}")
    if executor not in _EXECUTORS:
        raise ValueError(f"executor must be one of {tuple(_EXECUTORS)}; got {executor!r}")
    tasks = list(tasks)
    if not tasks:
        return []

    results: list = [None] * len(tasks)
    in_flight: dict[Future, int] = {}
    first_error: tuple[int, BaseException] | None = None
    cursor = 0
    pbar = tqdm(total=len(tasks), desc=desc, unit="task") if use_progress else None

    log.debug(f"running {len(tasks)} {desc} on a {executor} pool with limit={limit}")
    try:
        with _EXECUTORS[executor](max_workers=min(limit, len(tasks))) as pool:
            while cursor < len(tasks) or in_flight:
                # Refill free slots unless a failure has been observed.
                while first_error is None and cursor < len(tasks) and len(in_flight) < limit:
                    in_flight[pool.submit(tasks[cursor])] = cursor
                    cursor += 1
                if not in_flight:
                    break

                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    index = in_flight.pop(future)
                    if pbar is not None:
                        pbar.update(1)
                    try:
                        results[index] = future.result()
                    except Exception as err:
                        log.error(f"task {index} of {len(tasks)} failed: {err}")
                        if first_error is None:
                            first_error = (index, err)
    finally:
        if pbar is not None:
            pbar.close()

    if first_error is not None:
        index, err = first_error
        skipped = len(tasks) - cursor
        raise SchedulerError(f"task {index} failed ({skipped} not started): {err}", index=index) from err
    return results
