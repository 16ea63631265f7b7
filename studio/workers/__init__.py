# Workers package - job processors, dispatcher and RQ execution trigger

from studio.workers.base import BaseProcessor, ProcessorContext
from studio.workers.dispatcher import JobDispatcher, ExecutionOutcome, PROCESSORS
from studio.workers.queue import QueueManager, get_queue_manager, enqueue_execution
from studio.workers.tasks import run_job_task

__all__ = [
    # Base
    "BaseProcessor",
    "ProcessorContext",
    # Dispatch
    "JobDispatcher",
    "ExecutionOutcome",
    "PROCESSORS",
    # Queue
    "QueueManager",
    "get_queue_manager",
    "enqueue_execution",
    # Tasks
    "run_job_task",
]
