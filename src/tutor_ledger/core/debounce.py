'''
Debounced recalculation: a single-slot, cancellable delayed task.
'''
import asyncio
from typing import Callable, Optional

from ..common.logger import log


class ReconciliationScheduler:
    """
    Holds at most one pending callback. Scheduling a new one cancels the
    previous callback if it has not fired yet, so a burst of edits results in
    a single recalculation once the edits stop for `delay` seconds.

    Must be used from inside a running event loop.
    """
    def __init__(self, delay: float, name: str = "reconciliation"):
        self.delay = delay
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def is_pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, callback: Callable[[], None]) -> asyncio.Task:
        """
        Schedules `callback` to run after the delay, superseding any pending one.
        """
        if self.is_pending:
            log.info(f"Superseding pending {self.name} run.")
            self._task.cancel()

        self._task = asyncio.get_running_loop().create_task(self._run_later(callback))
        self._task.add_done_callback(self._retrieve_exception)
        return self._task

    def cancel(self) -> bool:
        """Cancels the pending run. Returns True if something was cancelled."""
        if self.is_pending:
            self._task.cancel()
            self._task = None
            return True
        return False

    async def flush(self):
        """Waits for the pending run, if any, to finish."""
        task = self._task
        if task is None:
            return
        try:
            # shielded so that cancelling the waiter leaves the run scheduled
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            # superseded by a newer run; wait for that one instead
            if self._task is not None and self._task is not task:
                await self.flush()

    async def _run_later(self, callback: Callable[[], None]):
        await asyncio.sleep(self.delay)
        try:
            callback()
        except Exception as e:
            log.error(f"Debounced {self.name} run failed: {e}", exc_info=True)
            raise

    @staticmethod
    def _retrieve_exception(task: asyncio.Task):
        """
        Marks a failed run's exception as retrieved; it was already logged in
        _run_later and is still re-raised to anyone awaiting flush().
        """
        if not task.cancelled():
            task.exception()
