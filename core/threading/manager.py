"""
Thread Manager for the signage player.

Blocking work (existence probes, fetching and decoding images) runs on a
small IO pool. Every result is marshalled back to the Qt UI thread before
it touches player state, so the engine itself stays single-threaded.
"""
import time
from concurrent.futures import ThreadPoolExecutor, Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
import threading
from PySide6.QtCore import QObject, QThread, QCoreApplication, Signal
from core.constants.timing import IO_POOL_WORKERS
from core.logging.logger import get_logger, is_verbose_logging
from core.logging.tags import TAG_THREADING

logger = get_logger(__name__)


class _UiInvoker(QObject):
    invoke = Signal(object, object, object)

    def __init__(self):
        super().__init__()
        self.invoke.connect(self._on_invoke)

    def _on_invoke(self, func, args, kwargs):
        try:
            func(*args, **(kwargs or {}))
        except Exception as e:
            logger.exception("UI invoker callable raised: %s", e)


_ui_invoker: Optional[_UiInvoker] = None
_ui_invoker_lock = threading.Lock()


def _ensure_ui_invoker() -> Optional[_UiInvoker]:
    global _ui_invoker
    app = QCoreApplication.instance()
    if app is None:
        logger.error("run_on_ui_thread: No QCoreApplication instance")
        return None
    with _ui_invoker_lock:
        if _ui_invoker is None:
            inv = _UiInvoker()
            inv.moveToThread(app.thread())
            _ui_invoker = inv
    return _ui_invoker


@dataclass
class TaskResult:
    """Container for task execution results"""
    success: bool
    result: Any = None
    error: Optional[Exception] = None
    execution_time: float = 0.0
    task_id: Optional[str] = None


class ThreadManager:
    """
    Owns the IO pool used by the preloader and the playlist builder.

    Callbacks passed to submit_io_task() run on the worker thread; callers
    that need the UI thread wrap them with run_on_ui_thread().
    """

    def __init__(self, io_workers: int = IO_POOL_WORKERS):
        """
        Initialize thread manager.

        Args:
            io_workers: Maximum concurrent IO tasks
        """
        self._shutdown = False
        self._io_workers = max(1, int(io_workers))
        self._executor = ThreadPoolExecutor(
            max_workers=self._io_workers,
            thread_name_prefix="io_pool",
        )
        self._active: Dict[str, Future] = {}
        self._active_lock = threading.Lock()
        self._stats = {'submitted': 0, 'completed': 0, 'failed': 0}
        self._task_seq = 0

        logger.info(f"{TAG_THREADING} ThreadManager initialized with IO=%d workers", self._io_workers)

    def submit_io_task(self, func: Callable, *args, task_id: Optional[str] = None,
                       callback: Optional[Callable[[TaskResult], None]] = None,
                       **kwargs) -> str:
        """
        Submit a task to the IO pool.

        Args:
            func: Function to execute
            *args: Positional arguments for func
            task_id: Optional identifier used in logs
            callback: Called on the worker thread with the TaskResult
            **kwargs: Keyword arguments for func

        Returns:
            str: Task ID for tracking
        """
        if self._shutdown:
            raise RuntimeError("Thread manager is shut down")

        with self._active_lock:
            self._task_seq += 1
            task_id = task_id or f"io_{self._task_seq}"
            self._stats['submitted'] += 1

        def wrapped_func():
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                task_result = TaskResult(
                    success=True,
                    result=result,
                    execution_time=time.time() - start_time,
                    task_id=task_id,
                )
                self._bump('completed')
            except Exception as e:
                task_result = TaskResult(
                    success=False,
                    error=e,
                    execution_time=time.time() - start_time,
                    task_id=task_id,
                )
                logger.error(f"{TAG_THREADING} Task {task_id} failed: {e}")
                self._bump('failed')
            finally:
                with self._active_lock:
                    self._active.pop(task_id, None)

            if callback:
                try:
                    callback(task_result)
                except Exception as e:
                    logger.error(f"{TAG_THREADING} Callback for task {task_id} failed: {e}")
            return task_result

        future = self._executor.submit(wrapped_func)
        with self._active_lock:
            if not future.done():
                self._active[task_id] = future

        if is_verbose_logging():
            logger.debug(f"{TAG_THREADING} Submitted task {task_id}")
        return task_id

    def _bump(self, key: str) -> None:
        with self._active_lock:
            self._stats[key] += 1

    def get_stats(self) -> Dict[str, int]:
        with self._active_lock:
            stats = dict(self._stats)
            stats['active'] = len(self._active)
        return stats

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def shutdown(self, wait: bool = True) -> None:
        """
        Shutdown the IO pool.

        Args:
            wait: Whether to wait for running tasks; queued tasks are cancelled
        """
        if self._shutdown:
            return
        self._shutdown = True
        logger.info(f"{TAG_THREADING} Shutting down thread manager (active=%d)", len(self._active))
        self._executor.shutdown(wait=wait, cancel_futures=True)
        with self._active_lock:
            self._active.clear()
        logger.info(f"{TAG_THREADING} Thread manager shut down complete")

    # UI dispatch utilities ----------------------------------------------
    @staticmethod
    def run_on_ui_thread(func: Callable, *args, **kwargs) -> None:
        """Dispatch a callable to the Qt UI thread"""
        app = QCoreApplication.instance()
        if app is None:
            logger.debug("run_on_ui_thread called without QCoreApplication")
            return

        if QThread.currentThread() is app.thread():
            func(*args, **(kwargs or {}))
            return

        inv = _ensure_ui_invoker()
        if inv is None:
            raise RuntimeError("UI invoker unavailable")
        inv.invoke.emit(func, args, kwargs or {})
