# app_controller/controller/controller.py
"""Controller - worker threads feeding record keys into the reconciliation engine."""

import logging
import threading
from typing import List, Optional

from app_controller.controller.workqueue import WorkQueue
from app_controller.core.models import RecordKey
from app_controller.engine.engine import ReconciliationEngine

logger = logging.getLogger(__name__)


class Controller:
    """
    Runs reconcile passes for queued keys.

    A key is never reconciled by two workers at once; the queue guarantees it.
    """

    def __init__(
        self,
        *,
        engine: ReconciliationEngine,
        queue: Optional[WorkQueue] = None,
        workers: int = 2,
        poll_timeout: float = 1.0,
    ):
        self.engine = engine
        self.queue = queue or WorkQueue()
        self.workers = workers
        self.poll_timeout = poll_timeout

        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []

    def enqueue(self, key: RecordKey) -> None:
        self.queue.add(key)

    def start(self):
        """Start worker threads."""
        logger.info(f"[controller] 🚀 Starting {self.workers} workers")

        for i in range(self.workers):
            thread = threading.Thread(
                target=self._run_loop,
                name=f"reconcile-worker-{i}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

    def stop(self, timeout: Optional[float] = 10.0):
        """Stop workers. A pass already in flight is allowed to finish."""
        logger.info("[controller] Stopping workers")
        self._stop_event.set()
        self.queue.shutdown()

        for thread in self._threads:
            thread.join(timeout)
        self._threads.clear()

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def _run_loop(self):
        while not self._stop_event.is_set():
            try:
                self.process_next(timeout=self.poll_timeout)
            except Exception as e:
                logger.error(f"[controller] Error in worker loop: {e}", exc_info=True)

    def process_next(self, timeout: Optional[float] = None) -> bool:
        """
        Reconcile one key if one is available.

        Returns False when nothing was processed (timeout or shutdown).
        """
        key = self.queue.get(timeout=timeout)
        if key is None:
            return False

        try:
            result = self.engine.reconcile(key)
        except Exception:
            logger.exception(f"[controller] reconcile of {key} crashed, retrying later")
            self.queue.done(key)
            self.queue.add_after(key, self.engine_retry_delay)
            return True

        self.queue.done(key)

        if result.requeue_after is not None:
            logger.debug(f"[controller] {key} requeued in {result.requeue_after}")
            self.queue.add_after(key, result.requeue_after)
        return True

    @property
    def engine_retry_delay(self):
        return self.engine.policy.persist_error
