from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class StaggeredTaskQueue:
    """Runs one task per item on a pool of at most ``max_workers`` threads,
    releasing task ``i`` no earlier than ``i * stagger_sec`` after the batch
    origin, then joins on all of them.
    """

    def __init__(
        self,
        stagger_sec: float = 0.1,
        max_workers: int | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.stagger_sec = stagger_sec
        self.max_workers = max_workers
        self.clock = clock
        self.sleep = sleep

    def _wait_until(self, release_at: float) -> None:
        remaining = release_at - self.clock()
        if remaining > 0:
            self.sleep(remaining)

    def run(
        self,
        items: list[T],
        task: Callable[[T], R],
        on_error: Callable[[T, Exception], R],
    ) -> list[R]:
        if not items:
            return []

        origin = self.clock()

        def released(index: int, item: T) -> R:
            self._wait_until(origin + index * self.stagger_sec)
            try:
                return task(item)
            except Exception as exc:
                return on_error(item, exc)

        workers = min(self.max_workers or len(items), len(items))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="psx-batch") as pool:
            futures = [pool.submit(released, i, item) for i, item in enumerate(items)]
            return [f.result() for f in futures]
