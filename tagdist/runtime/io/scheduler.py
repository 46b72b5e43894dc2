from __future__ import annotations

"""Bounded-concurrency execution of an ordered batch of coroutines."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[T]]
CompletionObserver = Callable[[int], None]


class ConcurrencyLimitedScheduler(Generic[T]):
    """Run task factories with at most ``max_concurrent`` in flight.

    Tasks start in submission order and ``results[i]`` always holds the
    result of ``tasks[i]``. The first failure cancels everything still in
    flight and propagates; partial results are discarded.

    One instance runs one batch at a time; the in-flight registry and the
    results buffer belong to the running batch.
    """

    def __init__(self, max_concurrent: int = 10) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.max_concurrent = int(max_concurrent)
        self.peak_in_flight = 0

    async def run(
        self,
        tasks: Sequence[TaskFactory[T]],
        on_task_complete: CompletionObserver | None = None,
    ) -> list[T]:
        results: list[Any] = [None] * len(tasks)
        in_flight: dict[asyncio.Future[T], int] = {}
        completed = 0
        self.peak_in_flight = 0

        async def _drain() -> None:
            nonlocal completed
            done, _ = await asyncio.wait(set(in_flight), return_when=asyncio.FIRST_COMPLETED)
            for fut in done:
                index = in_flight.pop(fut)
                results[index] = fut.result()
                completed += 1
                if on_task_complete is not None:
                    on_task_complete(completed)

        try:
            for index, factory in enumerate(tasks):
                if len(in_flight) >= self.max_concurrent:
                    await _drain()
                in_flight[asyncio.ensure_future(factory())] = index
                self.peak_in_flight = max(self.peak_in_flight, len(in_flight))
            while in_flight:
                await _drain()
        except BaseException:
            pending = list(in_flight)
            for fut in pending:
                fut.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            logger.debug(
                "scheduler.aborted",
                extra={"completed": completed, "cancelled": len(pending)},
            )
            raise
        return results


__all__ = ["ConcurrencyLimitedScheduler", "TaskFactory", "CompletionObserver"]
