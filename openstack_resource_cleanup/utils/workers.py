"""Bounded worker pools used inside a single task invocation."""

from __future__ import annotations
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")

_DONE = object()


def run_worker_pool(
    items: Iterable[T], worker: Callable[[T], bool], width: int
) -> int:
    """Feed ``items`` to ``width`` workers through a bounded queue.

    Each item is handed to exactly one worker. ``worker`` returns True when it
    fully processed its item; the number of such items is returned. An
    exception raised by ``worker`` does not stop the pool: the remaining items
    are still processed and the first exception is re-raised afterwards.
    """
    if width < 1:
        raise ValueError("worker pool needs at least one worker")

    work: queue.Queue = queue.Queue(maxsize=width)

    def _consume() -> tuple[int, Exception | None]:
        local_done = 0
        first_error = None
        while True:
            item = work.get()
            if item is _DONE:
                return local_done, first_error
            try:
                if worker(item):
                    local_done += 1
            except Exception as e:
                if first_error is None:
                    first_error = e

    with ThreadPoolExecutor(max_workers=width) as executor:
        futures = [executor.submit(_consume) for _ in range(width)]
        try:
            for item in items:
                work.put(item)
        finally:
            for _ in range(width):
                work.put(_DONE)
        results = [future.result() for future in futures]

    for _, error in results:
        if error is not None:
            raise error
    return sum(done for done, _ in results)


def run_bounded(
    units: Iterable[Callable[[], None]], width: int
) -> list[Exception]:
    """Run callables with at most ``width`` in flight and collect their errors.

    ``units`` is consumed lazily: the next unit is only drawn once a slot is
    free. Every unit runs to completion; exceptions are gathered, not raised.
    An exception raised while drawing units propagates after the units already
    started have finished.
    """
    if width < 1:
        raise ValueError("worker pool needs at least one worker")

    slots = threading.BoundedSemaphore(width)
    futures = []
    with ThreadPoolExecutor(max_workers=width) as executor:
        for unit in units:
            slots.acquire()
            future = executor.submit(unit)
            future.add_done_callback(lambda _: slots.release())
            futures.append(future)

    errors: list[Exception] = []
    for future in as_completed(futures):
        error = future.exception()
        if error is not None:
            errors.append(error)
    return errors
