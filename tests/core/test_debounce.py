'''
testing the debounced recalculation scheduler
'''
import asyncio
import gc
import pytest

from tutor_ledger.core.debounce import ReconciliationScheduler

DELAY = 0.05


@pytest.mark.anyio
class TestReconciliationScheduler:

    async def test_runs_after_delay(self):
        calls = []
        scheduler = ReconciliationScheduler(delay=DELAY)

        scheduler.schedule(lambda: calls.append("run"))
        assert scheduler.is_pending is True
        assert calls == []

        await asyncio.sleep(DELAY * 4)
        assert calls == ["run"]
        assert scheduler.is_pending is False

    async def test_burst_collapses_into_one_run(self):
        calls = []
        scheduler = ReconciliationScheduler(delay=DELAY)

        for index in range(5):
            scheduler.schedule(lambda index=index: calls.append(index))
            await asyncio.sleep(DELAY / 10)

        await scheduler.flush()
        # only the last scheduled callback fires
        assert calls == [4]

    async def test_cancel(self):
        calls = []
        scheduler = ReconciliationScheduler(delay=DELAY)

        scheduler.schedule(lambda: calls.append("run"))
        assert scheduler.cancel() is True
        assert scheduler.cancel() is False

        await asyncio.sleep(DELAY * 4)
        assert calls == []
        assert scheduler.is_pending is False

    async def test_flush_without_pending_run(self):
        scheduler = ReconciliationScheduler(delay=DELAY)
        await scheduler.flush()
        assert scheduler.is_pending is False

    async def test_flush_waits_for_superseding_run(self):
        calls = []
        scheduler = ReconciliationScheduler(delay=DELAY)

        scheduler.schedule(lambda: calls.append("first"))
        flushing = asyncio.ensure_future(scheduler.flush())
        await asyncio.sleep(0)
        scheduler.schedule(lambda: calls.append("second"))

        await flushing
        assert calls == ["second"]

    async def test_failing_callback_surfaces_on_flush(self):
        def explode():
            raise RuntimeError("boom")

        scheduler = ReconciliationScheduler(delay=DELAY)
        scheduler.schedule(explode)

        with pytest.raises(RuntimeError, match="boom"):
            await scheduler.flush()

    async def test_cancelled_flush_leaves_run_scheduled(self):
        calls = []
        scheduler = ReconciliationScheduler(delay=DELAY)

        scheduler.schedule(lambda: calls.append("run"))
        waiter = asyncio.ensure_future(scheduler.flush())
        await asyncio.sleep(DELAY / 5)
        waiter.cancel()

        # the waiter's own cancellation is not swallowed
        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert scheduler.is_pending is True

        await asyncio.sleep(DELAY * 4)
        assert calls == ["run"]

    async def test_unflushed_failure_is_not_reported_as_unretrieved(self):
        def explode():
            raise RuntimeError("boom")

        loop = asyncio.get_running_loop()
        reported = []
        loop.set_exception_handler(lambda _loop, context: reported.append(context))
        try:
            scheduler = ReconciliationScheduler(delay=DELAY)
            failed = scheduler.schedule(explode)
            await asyncio.sleep(DELAY * 4)
            assert failed.done()

            # a later run replaces the failed task, nobody ever awaits it
            scheduler.schedule(lambda: None)
            await scheduler.flush()
            del failed
            gc.collect()
            await asyncio.sleep(0)

            assert not [c for c in reported if "never retrieved" in c.get("message", "")]
        finally:
            loop.set_exception_handler(None)
