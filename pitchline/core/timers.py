"""Cancellable periodic and one-shot timers on the running event loop."""

import asyncio
from typing import Awaitable, Callable, List

from loguru import logger

TimerCallback = Callable[[], Awaitable[None]]


class TimerGroup:
    """Owns every scheduled activity of a controller so they can be cancelled together.

    Callbacks run on the event loop that created the timer.  A tick runs to
    completion before the next one of the same timer is scheduled, so a slow
    callback delays its own timer instead of overlapping with itself.
    """

    def __init__(self) -> None:
        self._tasks: List[asyncio.Task] = []

    def every(self, interval_ms: float, callback: TimerCallback, name: str = 'interval') -> asyncio.Task:
        """Run ``callback`` every ``interval_ms`` until cancelled."""
        task = asyncio.get_running_loop().create_task(
            self._repeat(interval_ms / 1000, callback, name), name=name
        )
        self._tasks.append(task)
        return task

    def after(self, delay_ms: float, callback: TimerCallback, name: str = 'timeout') -> asyncio.Task:
        """Run ``callback`` once after ``delay_ms`` unless cancelled first."""
        task = asyncio.get_running_loop().create_task(
            self._once(delay_ms / 1000, callback, name), name=name
        )
        self._tasks.append(task)
        return task

    async def cancel_all(self) -> int:
        """Cancel every timer and wait for the cancelled ticks to finish.

        The task calling this (for instance a deadline whose callback stops
        the session) is left to run to completion.

        Returns:
            Number of timers that were cancelled
        """
        current = asyncio.current_task()
        pending = [task for task in self._tasks if task is not current]
        self._tasks.clear()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        return len(pending)

    def __len__(self) -> int:
        return len(self._tasks)

    @staticmethod
    async def _repeat(interval_s: float, callback: TimerCallback, name: str) -> None:
        while True:
            await asyncio.sleep(interval_s)
            try:
                await callback()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Timer '{name}' callback failed: {e}")

    @staticmethod
    async def _once(delay_s: float, callback: TimerCallback, name: str) -> None:
        await asyncio.sleep(delay_s)
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Timer '{name}' callback failed: {e}")
