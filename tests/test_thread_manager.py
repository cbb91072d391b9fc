"""Tests for the IO pool and UI-thread dispatch."""
import threading

import pytest

from core.threading.manager import TaskResult, ThreadManager


@pytest.mark.qt
class TestThreadManager:
    def test_task_result_delivered(self, thread_manager):
        done = threading.Event()
        results = []

        def _cb(result: TaskResult):
            results.append(result)
            done.set()

        thread_manager.submit_io_task(lambda x: x * 2, 21, callback=_cb)

        assert done.wait(5)
        assert results[0].success is True
        assert results[0].result == 42

    def test_failing_task_reports_error(self, thread_manager):
        done = threading.Event()
        results = []

        def _boom():
            raise ValueError("bad input")

        def _cb(result):
            results.append(result)
            done.set()

        thread_manager.submit_io_task(_boom, callback=_cb)

        assert done.wait(5)
        assert results[0].success is False
        assert isinstance(results[0].error, ValueError)

    def test_submit_after_shutdown_raises(self):
        manager = ThreadManager(io_workers=1)
        manager.shutdown()
        assert manager.is_shutdown
        with pytest.raises(RuntimeError):
            manager.submit_io_task(lambda: None)

    def test_run_on_ui_thread_inline_on_main_thread(self, qt_app):
        calls = []
        ThreadManager.run_on_ui_thread(calls.append, 1)
        assert calls == [1]

    def test_run_on_ui_thread_from_worker(self, qt_app, qtbot, thread_manager):
        seen = []

        def _work():
            ThreadManager.run_on_ui_thread(lambda: seen.append(threading.current_thread() is threading.main_thread()))

        thread_manager.submit_io_task(_work)
        qtbot.waitUntil(lambda: len(seen) == 1, timeout=5000)

        assert seen == [True]

    def test_stats(self, thread_manager):
        done = threading.Event()
        thread_manager.submit_io_task(lambda: None, callback=lambda r: done.set())
        assert done.wait(5)
        stats = thread_manager.get_stats()
        assert stats['submitted'] == 1
