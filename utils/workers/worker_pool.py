import itertools
import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Iterable, List

from config import WORKER_POOL_SIZE

logger = logging.getLogger(__name__)

PENDING = 'pending'
COMPLETED = 'completed'
FAILED = 'failed'


def _status_of(future: Future) -> str:
    if not future.done():
        return PENDING
    if future.cancelled() or future.exception() is not None:
        return FAILED
    return COMPLETED


class WorkerPool:
    """
    Thread pool running the UI's asynchronous effects off the event loop.

    Every submission gets a ``task_<n>`` id. The futures are kept until
    ``clear_completed_tasks`` prunes them so later submissions can be ordered
    after earlier ones with ``submit_after``.
    """

    def __init__(self, max_workers: int = None):
        self.max_workers = max_workers or WORKER_POOL_SIZE
        self.executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='effect')
        self.tasks: Dict[str, Future] = {}
        self.is_running = False
        self._ids = itertools.count(1)

        logger.info(f"Worker pool initialized with {self.max_workers} workers")

    def submit_task(self, task_func: Callable, *args, **kwargs) -> str:
        """
        Run ``task_func`` on a worker thread and return its task id.
        """
        if not self.is_running:
            self.start()

        task_id = f"task_{next(self._ids)}"
        future = self.executor.submit(task_func, *args, **kwargs)
        future.add_done_callback(lambda done: self._log_failure(task_id, done))
        self.tasks[task_id] = future

        logger.debug(f"Task {task_id} submitted ({getattr(task_func, '__name__', task_func)!s})")
        return task_id

    def submit_effect(self, task_func: Callable, deliver: Callable[[Any], None], *args, **kwargs) -> str:
        """
        Submit a task whose return value is handed to ``deliver`` from the
        worker thread once it finishes.
        """
        def run_and_deliver():
            message = task_func(*args, **kwargs)
            deliver(message)
            return message

        return self.submit_task(run_and_deliver)

    def submit_after(self, task_ids: Iterable[str], task_func: Callable, *args, **kwargs) -> str:
        """
        Submit a task that starts only after the given tasks have finished.
        Unknown or already-pruned task ids are ignored.
        """
        earlier = [self.tasks[task_id] for task_id in task_ids if task_id in self.tasks]

        def run_when_quiet():
            wait(earlier)
            return task_func(*args, **kwargs)

        return self.submit_task(run_when_quiet)

    def wait_for_all_tasks(self, timeout: float = None) -> Dict[str, Any]:
        """
        Block until every tracked task finishes; map each id to its return
        value, or to ``{'error': ...}`` when it raised.
        """
        results: Dict[str, Any] = {}
        for task_id, future in list(self.tasks.items()):
            try:
                results[task_id] = future.result(timeout=timeout)
            except Exception as e:
                results[task_id] = {'error': str(e)}
        return results

    def get_task_status(self, task_id: str) -> str:
        future = self.tasks.get(task_id)
        if future is None:
            return 'not_found'
        return _status_of(future)

    def pending_task_ids(self) -> List[str]:
        return [task_id for task_id, future in list(self.tasks.items()) if not future.done()]

    def start(self):
        if not self.is_running:
            self.is_running = True
            logger.info("Worker pool started")

    def stop(self, wait: bool = True):
        """
        Shut the executor down. Without ``wait`` queued effects are cancelled
        so quitting never blocks on a slow store.
        """
        if self.is_running:
            self.is_running = False
            self.executor.shutdown(wait=wait, cancel_futures=not wait)
            logger.info("Worker pool stopped")

    def get_stats(self) -> Dict[str, Any]:
        statuses = [_status_of(future) for future in list(self.tasks.values())]
        return {
            'total_tasks': len(statuses),
            PENDING: statuses.count(PENDING),
            COMPLETED: statuses.count(COMPLETED),
            FAILED: statuses.count(FAILED),
            'max_workers': self.max_workers,
            'is_running': self.is_running,
        }

    def clear_completed_tasks(self):
        finished = [task_id for task_id, future in list(self.tasks.items()) if future.done()]
        for task_id in finished:
            del self.tasks[task_id]
        logger.debug(f"Cleared {len(finished)} finished tasks")

    def auto_cleanup(self, max_completed_tasks: int = 100):
        """
        Prune finished tasks once more than ``max_completed_tasks`` have piled up.
        Called from the UI clock tick.
        """
        finished = sum(1 for future in list(self.tasks.values()) if future.done())
        if finished > max_completed_tasks:
            self.clear_completed_tasks()

    @staticmethod
    def _log_failure(task_id: str, future: Future) -> None:
        if future.cancelled():
            logger.debug(f"Task {task_id} cancelled")
        elif future.exception() is not None:
            logger.error(f"Task {task_id} failed: {future.exception()}")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop(wait=True)
