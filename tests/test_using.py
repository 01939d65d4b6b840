import asyncio
import io
import unittest

import anyio

from usingpy import using, suppressed, ConsoleLogger, set_logger


class SynchronousDisposable:
    def __init__(self, callback):
        self._callback = callback

    def dispose(self) -> None:
        self._callback()


class AsynchronousDisposable:
    def __init__(self, callback, delay: float = 0):
        self._callback = callback
        self._delay = delay

    async def dispose(self) -> None:
        await anyio.sleep(self._delay)
        self._callback()


class FailingDisposable:
    def __init__(self, calls, error):
        self._calls = calls
        self.error = error

    async def dispose(self) -> None:
        self._calls.append("dispose")
        raise self.error


class TestUsing(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.log = io.StringIO()
        set_logger(ConsoleLogger(level="DEBUG", stream=self.log))

    def tearDown(self):
        set_logger(None)

    async def test_async_disposable_is_disposed(self):
        calls = []
        calls.append("enter")

        def fn(r):
            self.assertIsInstance(r, AsynchronousDisposable)
            calls.append("fn")
            return "Hello world!"

        result = await using(AsynchronousDisposable(lambda: calls.append("dispose")), fn)
        calls.append("leave")
        self.assertEqual(result, "Hello world!")
        self.assertEqual(calls, ["enter", "fn", "dispose", "leave"])

    async def test_async_disposable_is_disposed_even_on_error(self):
        calls = []
        boom = RuntimeError("Error")

        def fn(_):
            calls.append("fn")
            raise boom

        calls.append("enter")
        with self.assertRaises(RuntimeError) as cm:
            await using(AsynchronousDisposable(lambda: calls.append("dispose")), fn)
        calls.append("leave")
        self.assertIs(cm.exception, boom)
        self.assertEqual(calls, ["enter", "fn", "dispose", "leave"])

    async def test_sync_disposable_is_disposed(self):
        calls = []
        calls.append("enter")

        def fn(r):
            self.assertIsInstance(r, SynchronousDisposable)
            calls.append("fn")
            return "Hello world!"

        result = await using(SynchronousDisposable(lambda: calls.append("dispose")), fn)
        calls.append("leave")
        self.assertEqual(result, "Hello world!")
        self.assertEqual(calls, ["enter", "fn", "dispose", "leave"])

    async def test_sync_disposable_is_disposed_even_on_error(self):
        calls = []

        def fn(_):
            calls.append("fn")
            raise ValueError("Error")

        calls.append("enter")
        with self.assertRaises(ValueError):
            await using(SynchronousDisposable(lambda: calls.append("dispose")), fn)
        calls.append("leave")
        self.assertEqual(calls, ["enter", "fn", "dispose", "leave"])

    async def test_async_work_settles_before_dispose(self):
        calls = []

        async def fn(_):
            calls.append("fn:start")
            await asyncio.sleep(0.01)
            calls.append("fn:end")
            return 42

        v = await using(AsynchronousDisposable(lambda: calls.append("dispose")), fn)
        self.assertEqual(v, 42)
        self.assertEqual(calls, ["fn:start", "fn:end", "dispose"])

    async def test_async_work_failure_propagates(self):
        calls = []

        async def fn(_):
            calls.append("fn")
            raise KeyError("missing")

        with self.assertRaises(KeyError):
            await using(SynchronousDisposable(lambda: calls.append("dispose")), fn)
        self.assertEqual(calls, ["fn", "dispose"])

    async def test_dispose_failure_after_success_is_reported(self):
        calls = []
        res = FailingDisposable(calls, OSError("cannot close"))
        with self.assertRaises(OSError) as cm:
            await using(res, lambda _: "ok")
        self.assertIs(cm.exception, res.error)
        self.assertEqual(calls, ["dispose"])

    async def test_work_failure_stays_primary_when_dispose_fails(self):
        calls = []
        res = FailingDisposable(calls, OSError("cannot close"))
        boom = ValueError("work")

        def fn(_):
            raise boom

        with self.assertRaises(ValueError) as cm:
            await using(res, fn)
        self.assertIs(cm.exception, boom)
        self.assertEqual(suppressed(cm.exception), (res.error,))
        self.assertTrue(any("cannot close" in n for n in cm.exception.__notes__))
        self.assertIn("dispose failed while work was failing", self.log.getvalue())

    async def test_dispose_runs_when_task_is_cancelled(self):
        calls = []
        started = asyncio.Event()

        async def fn(_):
            started.set()
            await asyncio.sleep(10)

        task = asyncio.create_task(using(AsynchronousDisposable(lambda: calls.append("dispose")), fn))
        await started.wait()
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task
        self.assertEqual(calls, ["dispose"])

    async def test_dispose_is_shielded_from_cancel_scope(self):
        calls = []

        async def fn(_):
            calls.append("fn")
            await anyio.sleep(10)

        with anyio.move_on_after(0.01) as cs:
            await using(AsynchronousDisposable(lambda: calls.append("dispose"), delay=0.02), fn)
        self.assertTrue(cs.cancelled_caught)
        self.assertEqual(calls, ["fn", "dispose"])
