"""
Queue Management Utilities
RQ wrapper used as the fire-and-forget execution trigger.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from rq import Queue
from rq.job import Job as RQJob

from studio.core.config import settings
from studio.core.redis import Queues, get_redis

logger = logging.getLogger(__name__)


class QueueManager:
    """
    Enqueues job executions on RQ.

    No RQ-level retry: a job that fails is recorded as failed and a new job
    must be created to try again.
    """

    def __init__(self, connection=None):
        self._queues: Dict[str, Queue] = {}
        self._redis = connection

    @property
    def redis(self):
        """Lazy Redis connection."""
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    def get_queue(self, queue_name: str = Queues.EXECUTION) -> Queue:
        if queue_name not in self._queues:
            self._queues[queue_name] = Queue(
                name=queue_name,
                connection=self.redis,
                default_timeout=settings.JOB_TIMEOUT_EXECUTION
            )
            logger.debug(f"Created queue: {queue_name}")
        return self._queues[queue_name]

    def enqueue_execution(self, job_id: str, owner_id: str) -> RQJob:
        """
        Enqueue one execution of a stored job.

        Args:
            job_id: ai_jobs id
            owner_id: caller identity the execution runs as

        Returns:
            RQ Job instance
        """
        from studio.workers.tasks import run_job_task

        rq_job = self.get_queue(Queues.EXECUTION).enqueue(
            run_job_task,
            job_id=job_id,
            owner_id=owner_id,
            job_timeout=settings.JOB_TIMEOUT_EXECUTION,
            meta={
                "job_id": job_id,
                "owner_id": owner_id,
                "created_at": datetime.utcnow().isoformat(),
            }
        )
        logger.info(f"Enqueued execution of job {job_id} (rq: {rq_job.id})")
        return rq_job


_queue_manager: Optional[QueueManager] = None


def get_queue_manager() -> QueueManager:
    """Get singleton QueueManager instance."""
    global _queue_manager
    if _queue_manager is None:
        _queue_manager = QueueManager()
    return _queue_manager


def enqueue_execution(job_id: str, owner_id: str) -> RQJob:
    return get_queue_manager().enqueue_execution(job_id, owner_id)


__all__ = ["QueueManager", "get_queue_manager", "enqueue_execution"]
