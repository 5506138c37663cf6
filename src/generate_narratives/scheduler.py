"""Background execution of delayed narrative checks."""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from generate_narratives.generate_narratives import NarrativeTrigger
from rds_postgres.connection import get_session

logger = logging.getLogger(__name__)


class NarrativeScheduler:
    """Runs ``NarrativeTrigger.process_cluster`` off the ingestion path.

    Each check waits ``delay_seconds`` first so that articles from the same
    fetch cycle land before the cluster is evaluated. A cluster already
    waiting in the queue is not queued twice.
    """

    def __init__(
        self,
        trigger: NarrativeTrigger,
        session_factory: sessionmaker[Session],
        delay_seconds: float = 5.0,
        max_workers: int = 2,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.trigger = trigger
        self.session_factory = session_factory
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="narrative")
        self._pending: set[int] = set()
        self._lock = threading.Lock()

    def schedule(self, cluster_id: int) -> Future | None:
        with self._lock:
            if cluster_id in self._pending:
                logger.debug("Narrative check for cluster %d already queued", cluster_id)
                return None
            self._pending.add(cluster_id)

        future = self._executor.submit(self._run, cluster_id)
        future.add_done_callback(partial(self._on_done, cluster_id))
        return future

    def _run(self, cluster_id: int) -> str:
        if self.delay_seconds:
            self._sleep(self.delay_seconds)
        with self._lock:
            self._pending.discard(cluster_id)
        with get_session(self.session_factory) as session:
            return self.trigger.process_cluster(session, cluster_id)

    def _on_done(self, cluster_id: int, future: Future) -> None:
        with self._lock:
            self._pending.discard(cluster_id)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning("Narrative check failed for cluster %d: %s", cluster_id, error)
        else:
            logger.debug("Narrative check for cluster %d: %s", cluster_id, future.result())

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
