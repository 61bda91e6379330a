"""
=============================================================================
THREAD POOL
=============================================================================

Serving clients one at a time means one slow client stalls everyone:

    SERIAL:
        accept(A) ── A is typing slowly ........... done
                                                         accept(B) ── ...
        B waits in the OS backlog the whole time.

    POOLED:
        accept(A) → queue → worker 1 serves A
        accept(B) → queue → worker 2 serves B
        accept(C) → queue → worker 3 serves C

Each connection becomes one Task. Workers pull tasks from a shared
queue. Connections share no state, so no locking is needed around the
request handling itself; the only lock here protects the worker list.

=============================================================================
THREAD POOL ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           ThreadPool                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   submit(task) ──► ┌─────────────────────────┐                      │
    │                    │  queue.Queue(maxsize)   │  FIFO                │
    │                    └───────────┬─────────────┘                      │
    │                                │ get()                               │
    │              ┌─────────────────┼─────────────────┐                  │
    │              ▼                 ▼                 ▼                  │
    │        ┌──────────┐      ┌──────────┐      ┌──────────┐             │
    │        │ Worker-0 │      │ Worker-1 │      │ Worker-N │             │
    │        └──────────┘      └──────────┘      └──────────┘             │
    │                                                                      │
    │   min_workers started up front, more added (up to max_workers)      │
    │   while every worker is busy and tasks are waiting.                 │
    │                                                                      │
    │   Queue full? submit() blocks: back-pressure onto the accept loop   │
    │   and from there onto the kernel's listen backlog.                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred function call.

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: When the task entered the queue.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the queue.

    Loop:
        1. get() a task (with a timeout so shutdown is noticed)
        2. None is the poison pill → exit
        3. run the task; an exception is logged, never fatal to the worker
        4. task_done()
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        # daemon=True: a stuck worker never keeps the process alive
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

            if task is None:
                self.task_queue.task_done()
                break

            try:
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """Run one task with state tracking and timing."""
        self.state = WorkerState.BUSY
        start_time = time.time()
        waited = start_time - task.submitted_at

        try:
            task.func(*task.args, **task.kwargs)
            elapsed = time.time() - start_time
            logger.debug(
                f"Worker {self.worker_id} completed task in {elapsed:.3f}s "
                f"(queued {waited:.3f}s)"
            )
            self.tasks_completed += 1
        except Exception as e:
            # One bad connection must not take the worker down with it.
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Signal the worker to stop."""
        self._shutdown.set()


class ThreadPool:
    """
    Bounded pool of worker threads.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        pool.submit(handle_connection, args=(conn,))
        print(pool.stats)
        pool.shutdown(wait=True, timeout=30.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0,
    ):
        """
        Args:
            min_workers: Threads started by start() and always running.
            max_workers: Upper bound the pool scales up to under load.
            queue_size: Tasks that may wait for a worker.
            idle_timeout: How often an idle worker checks for shutdown.
        """
        if min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if max_workers < min_workers:
            raise ValueError("max_workers must be >= min_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)

        self._workers: list = []
        self._lock = threading.Lock()  # Protects _workers
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        """Start min_workers threads. Calling twice is a no-op."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        self._shutdown = False
        for _ in range(self.min_workers):
            self._add_worker()

        self._started = True

    def _add_worker(self) -> Worker:
        with self._lock:
            if len(self._workers) >= self.max_workers:
                raise RuntimeError("Maximum workers reached")

            worker = Worker(
                task_queue=self._task_queue,
                worker_id=self._next_worker_id,
                idle_timeout=self.idle_timeout,
            )
            self._next_worker_id += 1
            self._workers.append(worker)
            worker.start()
            return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue a task.

        Args:
            func: The function to execute.
            args: Positional arguments for the function.
            kwargs: Keyword arguments for the function.
            block: Wait for queue space instead of failing immediately.
            queue_timeout: How long to wait for space when blocking.

        Returns:
            True if queued, False if the queue stayed full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker when every worker is busy and tasks are waiting."""
        with self._lock:
            worker_count = len(self._workers)
            busy_count = sum(1 for w in self._workers if w.state == WorkerState.BUSY)
            if (busy_count < worker_count or worker_count >= self.max_workers
                    or self._task_queue.qsize() == 0):
                return

        logger.debug(f"Scaling up: {worker_count} -> {worker_count + 1} workers")
        try:
            self._add_worker()
        except RuntimeError:
            pass  # Another submit() got there first

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish before stopping workers.
            timeout: Upper bound on the wait, in seconds.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while self._task_queue.unfinished_tasks:
                if deadline and time.time() > deadline:
                    logger.warning("Thread pool shutdown timeout, forcing stop")
                    break
                time.sleep(0.05)

        for _ in self._workers:
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                break  # Workers also stop via their shutdown flag

        for worker in self._workers:
            worker.shutdown()
            worker.join(timeout=2.0)

        self._workers.clear()
        self._started = False
        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def pending(self) -> int:
        """Tasks queued but not yet picked up."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts, for logging on shutdown."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
