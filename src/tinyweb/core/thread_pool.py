"""
=============================================================================
THREAD POOL IMPLEMENTATION
=============================================================================

A fixed set of worker threads pulling tasks from one shared queue. Every
accepted connection becomes one task; whichever worker is free picks it up.

=============================================================================
THREAD POOL ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Thread Pool                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │                      TASK QUEUE                              │   │
    │   │  ─────────────────────────────────────────────────────────  │   │
    │   │  [Task 1] [Task 2] [Task 3] [Task 4] ...                    │   │
    │   │                                                              │   │
    │   │  • Thread-safe queue (queue.Queue)                          │   │
    │   │  • Unbounded: submit() never blocks                         │   │
    │   │  • Blocks when empty (workers wait)                         │   │
    │   │  • FIFO order (first in, first out)                         │   │
    │   └──────────────────────┬──────────────────────────────────────┘   │
    │                          │                                           │
    │                          │ get()  (each task handed out ONCE)        │
    │                          ▼                                           │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │                      WORKERS                                 │   │
    │   │  ─────────────────────────────────────────────────────────  │   │
    │   │                                                              │   │
    │   │  ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐       │   │
    │   │  │ Worker 0 │ │ Worker 1 │ │ Worker 2 │ │ Worker 3 │       │   │
    │   │  │ (idle)   │ │ (busy)   │ │ (busy)   │ │ (idle)   │       │   │
    │   │  └──────────┘ └──────────┘ └──────────┘ └──────────┘       │   │
    │   │                                                              │   │
    │   │  • Created when the pool is created, never replaced         │   │
    │   │  • A task that raises is logged; the worker carries on      │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WORKER LIFECYCLE
=============================================================================

    def run(self):
        while True:
            task = queue.get()      ← BLOCKS until task available
            if task is None:        ← "Poison pill" signals shutdown
                break
            task.execute()          ← Exceptions logged, never re-raised
            queue.task_done()

The queue has no size limit. A flood of connections grows memory rather
than blocking the accept loop.

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
    """
    Worker thread states.

    Used for monitoring and debugging the thread pool.
    """
    IDLE = "idle"      # Waiting for task
    BUSY = "busy"      # Executing task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call: "call this function with these arguments later".

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)

    def execute(self) -> Any:
        """Run the task once."""
        return self.func(*self.args, **self.kwargs)


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Worker Loop                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Wait for task from queue (blocking)                            │
    │          │                                                           │
    │          ▼                                                           │
    │   2. Check if it's a "poison pill" (None)                           │
    │          │                                                           │
    │          ├── Yes → Exit loop, thread terminates                     │
    │          │                                                           │
    │          └── No → Continue to step 3                                │
    │                                                                      │
    │   3. Execute the task                                               │
    │          │                                                           │
    │          └── Catch: Log any exceptions (don't crash worker)         │
    │                                                                      │
    │   4. Signal task complete (task_done())                             │
    │          │                                                           │
    │          └── Go back to step 1                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int):
        """
        Initialize the worker.

        Args:
            task_queue: Queue to pull tasks from (shared by all workers).
            worker_id: Identifier for this worker (for logging).
        """
        # daemon=True: a worker blocked on get() must not keep the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id

        self.state = WorkerState.IDLE

        # Metrics
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        """
        Main worker loop.

        Runs until a poison pill is received.
        """
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()

            try:
                if task is None:
                    break

                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """
        Execute a single task.

        A failing task is logged with its traceback and counted; it never
        unwinds into the worker loop.

        Args:
            task: The task to execute.
        """
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.execute()

            elapsed = time.time() - start_time
            logger.debug(f"Worker {self.worker_id} completed task in {elapsed:.3f}s")
            self.tasks_completed += 1

        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Fixed-size thread pool.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ThreadPool Usage                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   # Create pool (workers start immediately)                         │
    │   pool = ThreadPool(8)                                               │
    │                                                                      │
    │   # Submit tasks (returns at once)                                   │
    │   pool.submit(handle_connection, args=(conn,))                      │
    │                                                                      │
    │   # Check status                                                     │
    │   print(pool.stats)  # {"workers": {"busy": 3, ...}, ...}          │
    │                                                                      │
    │   # Shutdown (waits for pending tasks)                              │
    │   pool.shutdown(wait=True)                                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, size: int):
        """
        Create the pool and start its workers.

        Args:
            size: Number of worker threads. Must be at least 1.

        Raises:
            ValueError: If size is less than 1.
        """
        if size < 1:
            raise ValueError(f"ThreadPool must have one thread at least, got {size}")

        self._size = size

        # Unbounded: put() never blocks the accept loop
        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue()

        self._lock = threading.Lock()  # Protects _shutdown against concurrent submit()
        self._shutdown = False

        logger.info(f"Starting thread pool with {size} workers")

        self._workers: list[Worker] = []
        for worker_id in range(size):
            worker = Worker(task_queue=self._task_queue, worker_id=worker_id)
            self._workers.append(worker)
            worker.start()

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
    ) -> Task:
        """
        Queue a function call for execution on some worker.

        Args:
            func: The function to execute.
            args: Positional arguments for the function.
            kwargs: Keyword arguments for the function.

        Returns:
            The queued task.

        Raises:
            RuntimeError: If the pool has been shut down.
        """
        task = Task(func=func, args=args, kwargs=kwargs or {})

        with self._lock:
            if self._shutdown:
                raise RuntimeError("Thread pool is shut down")
            self._task_queue.put(task)

        return task

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop all workers.

        Args:
            wait: Whether to let queued tasks finish first. If False, tasks
                  still in the queue when the pills arrive behind them are
                  run anyway, since the pills are queued last.
            timeout: Maximum seconds to wait for each worker to exit.
        """
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True

        logger.info("Shutting down thread pool...")

        if wait:
            self._task_queue.join()

        # One poison pill per worker, queued behind any remaining tasks
        for _ in self._workers:
            self._task_queue.put(None)

        for worker in self._workers:
            worker.join(timeout=timeout)

        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING: Check pool status
    # =========================================================================

    @property
    def size(self) -> int:
        """Number of workers the pool was created with."""
        return self._size

    @property
    def busy_workers(self) -> int:
        """Get count of busy workers."""
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def queue_size(self) -> int:
        """Get current task queue size."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """
        Get thread pool statistics.

        Returns a dict with worker and task counts.
        """
        return {
            "workers": {
                "total": len(self._workers),
                "alive": sum(1 for w in self._workers if w.is_alive()),
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self.queue_size,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
