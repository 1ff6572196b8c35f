"""
=============================================================================
THREAD POOL
=============================================================================

Fixed-floor, bounded-ceiling pool of worker threads fed from one queue.
Each accepted connection becomes one task; a worker owns that connection
until it closes.

    ┌──────────────┐     submit()     ┌────────────────────┐
    │ accept loop  │ ───────────────► │  queue.Queue()     │ (unbounded)
    └──────────────┘                  └─────────┬──────────┘
                                                │ get()
                    ┌───────────────┬───────────┼───────────────┐
                    ▼               ▼           ▼               ▼
                Worker-0        Worker-1     Worker-2   ...  Worker-N
                (min_workers started up front, more added up to max_workers
                 while every worker is busy and tasks are waiting)

The queue has no size limit: a burst of connections waits for a worker
instead of being refused. Shutdown puts one ``None`` per worker on the
queue; a worker that takes ``None`` exits.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any, Dict, List
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: ``func(*args, **kwargs)``."""
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Daemon thread that runs tasks from the shared queue until it receives
    ``None`` or is told to shut down.

    A task that raises is logged and counted; the worker keeps running.
    """

    def __init__(
        self,
        task_queue: "queue.Queue[Optional[Task]]",
        worker_id: int,
        idle_timeout: float = 60.0
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s "
                f"(queued {start_time - task.submitted_at:.3f}s)"
            )
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Thread pool for connection tasks.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=32)
        pool.start()
        pool.submit(handle_connection, args=(conn,))
        ...
        pool.shutdown(wait=True)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 32,
        idle_timeout: float = 60.0
    ):
        if min_workers < 1:
            raise ValueError("min_workers must be at least 1")
        if max_workers < min_workers:
            raise ValueError("max_workers must be >= min_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue()

        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutdown

    def start(self):
        """Start ``min_workers`` workers. Calling it again does nothing."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers (max {self.max_workers})")

        self._shutdown = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()

        self._started = True

    def _add_worker(self) -> Worker:
        """Start one more worker. Caller holds ``_lock``."""
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Queue ``func(*args, **kwargs)`` for a worker.

        Never blocks and never rejects: the queue is unbounded.

        Raises:
            RuntimeError: The pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        self._task_queue.put(Task(func=func, args=args, kwargs=kwargs or {}))
        self._maybe_scale_up()

    def _maybe_scale_up(self):
        """Add a worker when all are busy, tasks are waiting, and we are under max."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            if self.busy_workers < len(self._workers):
                return
            if self._task_queue.qsize() == 0:
                return

            logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
            self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop every worker.

        Args:
            wait: Let queued tasks run first. With False, queued tasks are
                  left behind.
            timeout: Upper bound on the wait for queued tasks, in seconds.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            if timeout:
                deadline = time.time() + timeout
                while not self._task_queue.empty():
                    if time.time() > deadline:
                        logger.warning("Thread pool shutdown timed out, stopping workers")
                        break
                    time.sleep(0.05)
            else:
                self._task_queue.join()

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for _ in workers:
            self._task_queue.put(None)

        for worker in workers:
            worker.shutdown()
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    def _count(self, state: WorkerState) -> int:
        return sum(1 for w in self._workers if w.state == state)

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return self._count(WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return self._count(WorkerState.IDLE)

    @property
    def pending_tasks(self) -> int:
        """Tasks waiting in the queue (not yet picked up by a worker)."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> Dict[str, Dict[str, int]]:
        """Worker and task counters, e.g. for a debug log line."""
        workers = list(self._workers)
        return {
            "workers": {
                "total": len(workers),
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self.pending_tasks,
                "completed": sum(w.tasks_completed for w in workers),
                "failed": sum(w.tasks_failed for w in workers),
            },
        }
